import unittest
from unittest.mock import MagicMock

import requests

from member_console.errors import MEMBER_ALREADY_EXISTS, PlatformError
from member_console.members import delete_members, register_member, search_members
from member_console.platform_client import HttpPlatformClient, InMemoryPlatformClient


def _response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.content = b"{}" if payload is not None else b""
    response.text = text
    if payload is None:
        response.json.side_effect = ValueError("no body")
    else:
        response.json.return_value = payload
    return response


class HttpPlatformClientTests(unittest.TestCase):
    def setUp(self):
        self.session = MagicMock()
        self.session.post.return_value = _response(
            payload={"access_token": "token-1", "expires_in": 14400}
        )
        self.client = HttpPlatformClient(
            client_id="client-1", base_url="https://api.example.com/", session=self.session
        )

    def test_query_members_uses_cached_token(self):
        self.session.request.return_value = _response(
            payload={
                "members": [
                    {
                        "id": "m1",
                        "contactId": "c1",
                        "loginEmail": "alice@example.com",
                        "profile": {"nickname": "Alice"},
                    }
                ]
            }
        )
        members = self.client.query_members("alice")
        self.client.query_members("")

        self.assertEqual(members[0].id, "m1")
        self.assertEqual(members[0].contact_id, "c1")
        self.assertEqual(members[0].nickname, "Alice")
        self.session.post.assert_called_once()
        token_call = self.session.post.call_args
        self.assertEqual(token_call.args[0], "https://api.example.com/oauth2/token")
        self.assertEqual(
            token_call.kwargs["json"], {"clientId": "client-1", "grantType": "anonymous"}
        )

        method, url = self.session.request.call_args_list[0].args
        self.assertEqual((method, url), ("POST", "https://api.example.com/members/v1/members/query"))
        first_kwargs = self.session.request.call_args_list[0].kwargs
        self.assertEqual(first_kwargs["headers"], {"Authorization": "token-1"})
        self.assertEqual(
            first_kwargs["json"]["query"], {"filter": {"loginEmail": {"$contains": "alice"}}}
        )
        self.assertEqual(self.session.request.call_args_list[1].kwargs["json"]["query"], {})

    def test_application_error_code(self):
        self.session.request.return_value = _response(
            409,
            payload={
                "message": "Member already exists",
                "details": {"applicationError": {"code": MEMBER_ALREADY_EXISTS}},
            },
        )
        with self.assertRaises(PlatformError) as ctx:
            self.client.register("a@example.com", "pw")
        self.assertEqual(ctx.exception.code, MEMBER_ALREADY_EXISTS)
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.message, "Member already exists")

    def test_error_without_json_body(self):
        self.session.request.return_value = _response(503, text="Service Unavailable")
        with self.assertRaises(PlatformError) as ctx:
            self.client.delete_contact("c1")
        self.assertEqual(ctx.exception.message, "Service Unavailable")
        self.assertIsNone(ctx.exception.code)

    def test_token_response_without_access_token(self):
        self.session.post.return_value = _response(payload={"error": "unexpected"})
        with self.assertRaises(PlatformError) as ctx:
            self.client.query_members("")
        self.assertEqual(ctx.exception.message, "Token response has no access token")
        self.assertEqual(ctx.exception.status_code, 200)
        self.session.request.assert_not_called()

    def test_network_failure_becomes_platform_error(self):
        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(PlatformError):
            self.client.bulk_delete_members(["m1"])

    def test_unauthorized_refreshes_token(self):
        self.session.request.side_effect = [
            _response(401, payload={"message": "Unauthorized"}),
            _response(payload={}),
        ]
        with self.assertRaises(PlatformError):
            self.client.bulk_delete_members(["m1"])
        self.client.bulk_delete_members(["m1"])
        self.assertEqual(self.session.post.call_count, 2)

    def test_register_returns_state(self):
        self.session.request.return_value = _response(
            payload={"state": {"stateType": "PENDING_OWNER_APPROVAL"}, "identity": {"id": "i1"}}
        )
        result = self.client.register("a@example.com", "pw")
        self.assertEqual(result, {"status": "PENDING_OWNER_APPROVAL", "member": {"id": "i1"}})
        kwargs = self.session.request.call_args.kwargs
        self.assertEqual(
            kwargs["json"],
            {"loginId": {"email": "a@example.com"}, "password": "pw", "profile": {}},
        )

    def test_find_contact_id(self):
        self.session.request.side_effect = [
            _response(payload={"contacts": [{"id": "c9"}]}),
            _response(payload={"contacts": []}),
        ]
        self.assertEqual(self.client.find_contact_id("a@example.com"), "c9")
        self.assertIsNone(self.client.find_contact_id("b@example.com"))

    def test_delete_contact_with_empty_body(self):
        self.session.request.return_value = _response(payload=None)
        self.session.request.return_value.ok = True
        self.client.delete_contact("c1")
        method, url = self.session.request.call_args.args
        self.assertEqual((method, url), ("DELETE", "https://api.example.com/contacts/v4/contacts/c1"))


class MemberOperationTests(unittest.TestCase):
    def setUp(self):
        self.platform = InMemoryPlatformClient("client-1")

    def test_search_members_strips_query(self):
        self.platform.add_member("alice@example.com")
        self.platform.add_member("bob@example.com")
        self.assertEqual(len(search_members(self.platform, "  alice ")), 1)
        self.assertEqual(len(search_members(self.platform, "")), 2)

    def test_delete_members_waits_before_contacts(self):
        alice = self.platform.add_member("alice@example.com")
        bob = self.platform.add_member("bob@example.com")
        sleeps = []

        result = delete_members(
            self.platform,
            [alice.id, bob.id],
            [alice.contact_id, None],
            contact_delay_seconds=5.0,
            sleep=sleeps.append,
        )
        self.assertEqual(result, (2, 1))
        self.assertEqual(sleeps, [5.0])
        self.assertEqual(self.platform.members, {})
        self.assertEqual(list(self.platform.contacts), [bob.contact_id])

    def test_register_member_reports_contact(self):
        result = register_member(self.platform, "new@example.com", "pw")
        self.assertTrue(result["success"])
        self.assertIsNone(result["contact_id"])

        self.platform.bulk_delete_members(list(self.platform.members))
        again = register_member(self.platform, "new@example.com", "pw")
        self.assertTrue(again["success"])
        self.assertIsNotNone(again["contact_id"])

    def test_register_member_failure(self):
        self.platform.failures["bad@example.com"] = "Password too short"
        result = register_member(self.platform, "bad@example.com", "pw")
        self.assertEqual(
            result,
            {"success": False, "error": "Failed to register bad@example.com. Reason: Password too short"},
        )


if __name__ == "__main__":
    unittest.main()
