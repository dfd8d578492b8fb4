"""Unit tests for the client factory and its screen handlers."""

import pytest

from app import (
    INVALID_CREDENTIALS_MESSAGE,
    SHORTEN_FAILED_MESSAGE,
    SIGNUP_FAILED_MESSAGE,
    USER_DATA_FAILED_MESSAGE,
    USERNAME_TAKEN_MESSAGE,
    ShortenerClient,
    create_app,
)
from infrastructure.chart.text import TextChartRenderer
from services.link_repository import LIST_FAILED_MESSAGE
from services.view_router import View
from shared.time_bucket_utils import Granularity, to_chart_points


@pytest.fixture
async def client(settings, transport):
    client = create_app(settings, transport=transport)
    yield client
    await client.aclose()


@pytest.fixture
async def signed_in(client):
    assert await client.sign_in("ana", "pw")
    return client


def _points(client, code):
    return to_chart_points(client.controllers[code].state.buckets)


def _posts_to(fake_server, path):
    return [
        r for r in fake_server.requests if r.method == "POST" and r.url.path == path
    ]


class TestFactory:
    def test_create_app_wires_defaults(self, settings, transport):
        client = create_app(settings, transport=transport)
        assert isinstance(client, ShortenerClient)
        assert isinstance(client.renderer, TextChartRenderer)
        assert client.view == View.SIGNIN
        assert client.session.current_token() is None

    def test_short_url(self, client):
        assert client.short_url("abc") == "http://sho.rt/abc"

    async def test_context_manager_closes(self, settings, transport):
        async with create_app(settings, transport=transport) as client:
            await client.sign_in("ana", "pw")
        assert client.controllers == {}


class TestSignIn:
    async def test_success_opens_dashboard_with_charts(self, signed_in):
        client = signed_in
        assert client.view == View.DASHBOARD
        assert client.error_message is None
        assert client.processing is False
        assert [link.code for link in client.links.links] == ["abc"]
        assert _points(client, "abc") == [("10:00", 1), ("11:30", 1)]
        assert "10:00 |" in client.renderer.charts["abc"]

    async def test_wrong_password(self, client):
        assert await client.sign_in("ana", "nope") is False
        assert client.error_message == INVALID_CREDENTIALS_MESSAGE
        assert client.view == View.SIGNIN
        assert client.processing is False

    async def test_blank_credentials(self, client, fake_server):
        assert await client.sign_in("", "") is False
        assert client.error_message == INVALID_CREDENTIALS_MESSAGE
        assert fake_server.requests == []

    async def test_server_down(self, client, fake_server):
        fake_server.failing.add("/login")
        assert await client.sign_in("ana", "pw") is False
        assert client.error_message == INVALID_CREDENTIALS_MESSAGE


class TestSignUp:
    async def test_success_returns_to_signin(self, client, fake_server):
        client.router.show_signup()
        assert await client.sign_up("bo", "secret", "Bo") is True
        assert client.view == View.SIGNIN
        assert fake_server.users["bo"]["full_name"] == "Bo"
        assert client.session.current_token() is None

    async def test_taken_username(self, client):
        client.router.show_signup()
        assert await client.sign_up("ana", "pw") is False
        assert client.error_message == USERNAME_TAKEN_MESSAGE
        assert client.view == View.SIGNUP

    async def test_missing_fields(self, client, fake_server):
        client.router.show_signup()
        assert await client.sign_up("", "") is False
        assert client.error_message == "Username and password are required"
        assert fake_server.requests == []

    async def test_server_down(self, client, fake_server):
        client.router.show_signup()
        fake_server.failing.add("/register")
        assert await client.sign_up("bo", "pw") is False
        assert client.error_message == SIGNUP_FAILED_MESSAGE

    async def test_refused_outside_signup_view(self, client, fake_server):
        assert await client.sign_up("bo", "pw") is False
        assert client.error_message == SIGNUP_FAILED_MESSAGE
        assert client.view == View.SIGNIN
        assert _posts_to(fake_server, "/api/register") == []
        assert "bo" not in fake_server.users

    async def test_refused_from_dashboard(self, signed_in, fake_server):
        assert await signed_in.sign_up("bo", "pw") is False
        assert signed_in.view == View.DASHBOARD
        assert _posts_to(fake_server, "/api/register") == []


class TestSignOut:
    async def test_sign_out_tears_everything_down(self, signed_in):
        controller = signed_in.controllers["abc"]
        signed_in.sign_out()

        assert signed_in.view == View.SIGNIN
        assert signed_in.controllers == {}
        assert signed_in.links.links == []
        assert not controller.mounted
        assert controller.state.buckets == []

    async def test_revoked_token_on_reload(self, signed_in, fake_server):
        fake_server.revoked.add("tok-ana")
        assert await signed_in.reload_user() is False
        assert signed_in.error_message == USER_DATA_FAILED_MESSAGE
        assert signed_in.view == View.SIGNIN
        assert signed_in.controllers == {}

    async def test_reload_keeps_valid_session(self, signed_in):
        assert await signed_in.reload_user() is True
        assert signed_in.view == View.DASHBOARD

    async def test_rejected_token_leaves_any_view_for_signin(
        self, signed_in, fake_server
    ):
        signed_in.router.current = View.SIGNUP
        fake_server.revoked.add("tok-ana")
        assert await signed_in.reload_user() is False
        assert signed_in.view == View.SIGNIN


class TestLinks:
    async def test_list_failure_shows_inline_message(self, signed_in, fake_server):
        fake_server.failing.add("/me/urls")
        await signed_in.load_links()
        assert signed_in.error_message == LIST_FAILED_MESSAGE
        assert [link.code for link in signed_in.links.links] == ["abc"]
        assert signed_in.view == View.DASHBOARD

    async def test_list_rejected_signs_out(self, signed_in, fake_server):
        fake_server.revoked.add("tok-ana")
        await signed_in.load_links()
        assert signed_in.view == View.SIGNIN
        assert signed_in.session.current_token() is None

    async def test_shorten_adds_link_and_chart(self, signed_in):
        link = await signed_in.shorten_url("https://python.org")
        assert link is not None
        assert signed_in.error_message is None
        codes = [item.code for item in signed_in.links.links]
        assert codes == ["abc", link.code]
        assert link.code in signed_in.controllers
        assert signed_in.renderer.charts[link.code] == "(no clicks yet)"

    async def test_shorten_invalid_url_is_not_sent(self, signed_in, fake_server):
        assert await signed_in.shorten_url("python dot org") is None
        assert signed_in.error_message == "Enter a valid http(s) URL"
        assert _posts_to(fake_server, "/api/me/urls") == []

    async def test_shorten_server_failure(self, signed_in, fake_server):
        fake_server.failing.add("/me/urls")
        assert await signed_in.shorten_url("https://python.org") is None
        assert signed_in.error_message == SHORTEN_FAILED_MESSAGE
        assert signed_in.processing is False

    async def test_shorten_while_signed_out(self, client, fake_server):
        assert await client.shorten_url("https://python.org") is None
        assert client.error_message == SHORTEN_FAILED_MESSAGE
        assert fake_server.requests == []

    async def test_open_link_refreshes_counts_and_chart(self, signed_in, fake_server):
        fake_server.redirects["abc"].append("2026-10-19T11:30:30Z")
        fake_server.links["ana"][0]["redirects"] = 3

        url = await signed_in.open_link("abc")

        assert url == "http://sho.rt/abc"
        assert signed_in.links.get("abc").click_count == 3
        assert _points(signed_in, "abc") == [("10:00", 1), ("11:30", 2)]


class TestGranularity:
    async def test_switch_rebuckets_without_refetch(self, signed_in, fake_server):
        before = len(fake_server.requests)
        await signed_in.set_granularity("abc", Granularity.DAY)
        assert _points(signed_in, "abc") == [("10/19/2026", 2)]
        assert len(fake_server.requests) == before

    async def test_unknown_code(self, signed_in):
        with pytest.raises(KeyError):
            await signed_in.set_granularity("nope", Granularity.HOUR)
