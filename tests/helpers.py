import json

import httpx


class FakeTokens:
    """TokenProvider double that hands out numbered tokens."""

    def __init__(self):
        self.issued = 1
        self.refreshes = 0

    async def get_token(self) -> str:
        return f"token-{self.issued}"

    async def refresh_token(self) -> str:
        self.refreshes += 1
        self.issued += 1
        return f"token-{self.issued}"

    def is_token_valid(self) -> bool:
        return True


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def envelope(data, success=True, status=200, headers=None):
    return httpx.Response(
        status,
        json={"success": success, "data": data, "errorMessage": None if success else "boom"},
        headers=headers,
    )


def request_body(request: httpx.Request) -> dict:
    return json.loads(request.content or b"{}")
