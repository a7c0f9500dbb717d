"""
Unit Tests - Admin Authorization
"""
import httpx
import pytest

from backoffice.serving.auth import AdminAllowList, AdminIdentity, SupabaseAuthClient, extract_bearer_token


def auth_client(handler) -> SupabaseAuthClient:
    return SupabaseAuthClient(
        "https://project.example.co/",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


class TestSupabaseAuthClient:
    """Tests for token resolution"""

    async def test_valid_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["authorization"] = request.headers["Authorization"]
            seen["apikey"] = request.headers["apikey"]
            return httpx.Response(200, json={"id": "u-1", "email": "Admin@Example.com"})

        client = auth_client(handler)
        identity = await client.get_user("tok-1")
        await client.aclose()

        assert identity == AdminIdentity(id="u-1", email="admin@example.com")
        assert seen == {
            "url": "https://project.example.co/auth/v1/user",
            "authorization": "Bearer tok-1",
            "apikey": "anon-key",
        }

    @pytest.mark.parametrize("status_code", [401, 403, 500])
    async def test_rejected_token(self, status_code):
        client = auth_client(lambda request: httpx.Response(status_code, json={"msg": "invalid JWT"}))
        assert await client.get_user("tok") is None

    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = auth_client(handler)
        assert await client.get_user("tok") is None

    async def test_body_without_user(self):
        client = auth_client(lambda request: httpx.Response(200, json={}))
        assert await client.get_user("tok") is None


class TestAdminAllowList:
    """Tests for the allow-list"""

    def test_case_insensitive(self):
        allow_list = AdminAllowList(["Admin@Example.com", " ops@example.com "])

        assert "admin@example.com" in allow_list
        assert "OPS@example.com" in allow_list
        assert "other@example.com" not in allow_list
        assert len(allow_list) == 2

    def test_allows_identity(self):
        allow_list = AdminAllowList(["admin@example.com"])

        assert allow_list.allows(AdminIdentity(id="1", email="admin@example.com"))
        assert not allow_list.allows(AdminIdentity(id="2", email=""))

    def test_empty_list_allows_nobody(self):
        assert not AdminAllowList([]).allows(AdminIdentity(id="1", email="admin@example.com"))


class TestBearerToken:
    """Tests for Authorization header parsing"""

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            (None, None),
            ("", None),
            ("abc", None),
            ("Basic abc", None),
            ("Bearer a b", None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected
