"""Tests for the serverless request handler."""

import json
from types import SimpleNamespace
from unittest.mock import patch
from urllib.parse import urlencode

import pytest
from bs4 import BeautifulSoup

import api.index as poll_api
from tests.conftest import DI_1630, MO_1630, MO_1700


def make_request(method="GET", args=None, headers=None, body=b""):
    return SimpleNamespace(
        method=method,
        args=args or {},
        headers=headers or {},
        body=body,
        remote_addr="192.0.2.1",
    )


def form_post(fields, headers=None, args=None):
    return make_request(
        "POST",
        args=args,
        headers={"Content-Type": "application/x-www-form-urlencoded", **(headers or {})},
        body=urlencode(fields, doseq=True).encode("utf-8"),
    )


def json_post(data, headers=None):
    return make_request(
        "POST",
        headers={"Content-Type": "application/json", **(headers or {})},
        body=json.dumps(data).encode("utf-8"),
    )


def soup_of(response):
    return BeautifulSoup(response["body"], "lxml")


@pytest.fixture
def config(small_config, monkeypatch):
    monkeypatch.setattr(poll_api, "CONFIG", small_config)
    return small_config


@pytest.fixture
def secret_config(small_config, monkeypatch):
    config = small_config.model_copy(update={"admin_secret": "geheim"})
    monkeypatch.setattr(poll_api, "CONFIG", config)
    return config


def voter_count(config):
    return poll_api.VoteStore(config.db_path).count_votes()


class TestGet:
    def test_renders_vote_page(self, config):
        response = poll_api.handler(make_request())
        assert response["statusCode"] == 200
        assert response["headers"]["Content-Type"] == "text/html; charset=utf-8"
        soup = soup_of(response)
        assert soup.select_one("#pollForm") is not None
        assert soup.title.get_text() == "Testumfrage"

    def test_method_not_allowed(self, config):
        response = poll_api.handler(make_request("DELETE"))
        assert response["statusCode"] == 405

    def test_cookie_marks_voter(self, config):
        poll_api.handler(form_post({"name": "Anna", "primary[]": [MO_1630]}))
        response = poll_api.handler(make_request(headers={"Cookie": "poll_voter_name=anna"}))
        soup = soup_of(response)
        assert soup.select_one(".meta-bar .voted") is not None
        assert soup.select_one("#name")["value"] == "Anna"

    def test_unknown_cookie_name_only_prefills(self, config):
        response = poll_api.handler(make_request(headers={"Cookie": "poll_voter_name=Ghost"}))
        soup = soup_of(response)
        assert soup.select_one(".meta-bar .voted") is None
        assert soup.select_one("#name")["value"] == "Ghost"

    def test_internal_error(self, config):
        with patch.object(poll_api, "summarize_poll", side_effect=RuntimeError("boom")):
            response = poll_api.handler(make_request())
        assert response["statusCode"] == 500
        assert json.loads(response["body"]) == {"error": "Internal error"}


class TestAdmin:
    def test_open_when_no_secret(self, config):
        soup = soup_of(poll_api.handler(make_request(args={"admin": "1"})))
        assert soup.select_one(".ranking-list") is not None
        assert soup.select_one("#pollForm") is None

    def test_wrong_secret_shows_vote_view(self, secret_config):
        soup = soup_of(poll_api.handler(make_request(args={"admin": "1"})))
        assert soup.select_one(".ranking-list") is None
        assert soup.select_one("#pollForm") is not None

    def test_right_secret(self, secret_config):
        soup = soup_of(poll_api.handler(make_request(args={"admin": "geheim"})))
        assert soup.select_one(".ranking-list") is not None

    def test_json_summary(self, config):
        poll_api.handler(form_post({"name": "Anna", "primary[]": [MO_1630], "secondary[]": [DI_1630]}))
        response = poll_api.handler(make_request(args={"admin": "", "format": "json"}))
        assert response["statusCode"] == 200
        data = json.loads(response["body"])
        assert data["total_voters"] == 1
        assert data["ranking"][0] == {
            "slot": MO_1630, "rank": 1, "primary": 1, "secondary": 0, "total": 1, "score": 2,
        }

    def test_json_summary_needs_admin(self, secret_config):
        response = poll_api.handler(make_request(args={"admin": "falsch", "format": "json"}))
        assert response["statusCode"] == 403

    def test_check_admin(self):
        assert not poll_api.check_admin({}, "")
        assert poll_api.check_admin({"admin": ""}, "")
        assert poll_api.check_admin({"admin": "geheim"}, "geheim")
        assert not poll_api.check_admin({"admin": "Geheim"}, "geheim")
        assert not poll_api.check_admin({"admin": "ünicode"}, "geheim")


class TestFormPost:
    def test_saves_vote_and_sets_cookie(self, config):
        response = poll_api.handler(form_post(
            {"name": "Anna", "email": "anna@example.com", "primary[]": [MO_1630, MO_1700]},
            headers={"User-Agent": "pytest-browser", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        ))
        assert response["statusCode"] == 200
        assert response["headers"]["Set-Cookie"].startswith("poll_voter_name=Anna")
        soup = soup_of(response)
        assert soup.select_one(".message.success").get_text() == "Deine Stimme wurde gespeichert."

        vote = poll_api.VoteStore(config.db_path).get_voter_by_name("Anna")
        assert vote.primary_slots == [MO_1630, MO_1700]
        assert vote.ip == "203.0.113.7"
        assert vote.user_agent == "pytest-browser"

    def test_peer_address_without_forwarding(self, config):
        poll_api.handler(form_post({"name": "Anna", "primary[]": [MO_1630]}))
        vote = poll_api.VoteStore(config.db_path).get_voter_by_name("Anna")
        assert vote.ip == "192.0.2.1"
        assert vote.user_agent == "unknown"

    def test_resubmission_case_insensitive(self, config):
        poll_api.handler(form_post({"name": "Anna", "primary[]": [MO_1630]}))
        poll_api.handler(form_post({"name": "ANNA", "secondary[]": [MO_1700]}))
        assert voter_count(config) == 1

    def test_empty_name_rejected(self, config):
        response = poll_api.handler(form_post({"name": "  ", "primary[]": [MO_1630]}))
        soup = soup_of(response)
        assert soup.select_one(".message.error").get_text() == "Bitte gib deinen Namen ein."
        assert "Set-Cookie" not in response["headers"]
        assert voter_count(config) == 0

    def test_no_slots_rejected(self, config):
        response = poll_api.handler(form_post({"name": "Anna"}))
        soup = soup_of(response)
        assert soup.select_one(".message.error").get_text() == "Bitte wähle mindestens einen Zeitslot."
        assert voter_count(config) == 0

    def test_blank_slot_values_ignored(self, config):
        response = poll_api.handler(form_post({"name": "Anna", "primary[]": [""]}))
        assert soup_of(response).select_one(".message.error") is not None

    def test_post_without_name_just_renders(self, config):
        response = poll_api.handler(form_post({"email": "x@example.com"}))
        assert response["statusCode"] == 200
        assert soup_of(response).select_one(".message") is None

    def test_body_not_utf8(self, config):
        response = poll_api.handler(make_request(
            "POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=b"name=\xff\xfe&primary[]=x",
        ))
        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "Request body is not valid UTF-8"}
        assert voter_count(config) == 0

    def test_unsupported_content_type(self, config):
        response = poll_api.handler(make_request(
            "POST", headers={"Content-Type": "text/plain"}, body=b"hello"
        ))
        assert response["statusCode"] == 400


class TestJsonPost:
    def test_saves_vote(self, config):
        response = poll_api.handler(json_post(
            {"name": "Ben", "primary": [MO_1630], "secondary": [DI_1630]}
        ))
        assert response["statusCode"] == 200
        data = json.loads(response["body"])
        assert data["vote"]["name"] == "Ben"
        assert data["vote"]["secondary_slots"] == [DI_1630]
        assert "Set-Cookie" in response["headers"]

    def test_single_string_selection(self, config):
        response = poll_api.handler(json_post({"name": "Ben", "primary": MO_1630}))
        assert json.loads(response["body"])["vote"]["primary_slots"] == [MO_1630]

    def test_validation_error(self, config):
        response = poll_api.handler(json_post({"name": "Ben"}))
        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "Bitte wähle mindestens einen Zeitslot."}
        assert voter_count(config) == 0

    def test_invalid_json(self, config):
        response = poll_api.handler(make_request(
            "POST", headers={"Content-Type": "application/json"}, body=b"{not json"
        ))
        assert response["statusCode"] == 400
        assert "Invalid JSON" in json.loads(response["body"])["error"]

    def test_not_an_object(self, config):
        response = poll_api.handler(json_post(["Ben"]))
        assert response["statusCode"] == 400

    @pytest.mark.parametrize("selection", [5, {"slot": MO_1630}, True, ""])
    def test_odd_selection_types_count_as_nothing(self, config, selection):
        response = poll_api.handler(json_post({"name": "Ben", "primary": selection}))
        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "Bitte wähle mindestens einen Zeitslot."}
        assert voter_count(config) == 0

    def test_odd_selection_next_to_valid_one(self, config):
        response = poll_api.handler(json_post({"name": "Ben", "primary": 5, "secondary": [DI_1630]}))
        assert response["statusCode"] == 200
        vote = json.loads(response["body"])["vote"]
        assert vote["primary_slots"] == []
        assert vote["secondary_slots"] == [DI_1630]

    def test_body_not_utf8(self, config):
        response = poll_api.handler(make_request(
            "POST", headers={"Content-Type": "application/json"}, body=b'{"name": "\xff"}'
        ))
        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "Request body is not valid UTF-8"}
