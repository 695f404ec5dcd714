import logging

from vibeflo.api.base import ResourceAPI

logger = logging.getLogger(__name__)


class AuthAPI(ResourceAPI):
    """Account endpoints. Token handling lives in ``AuthStore``."""

    async def login(self, login: str, password: str) -> dict:
        return await self.gateway.post("/auth/login", json={"login": login, "password": password})

    async def register(self, name: str, username: str, email: str, password: str) -> dict:
        return await self.gateway.post(
            "/auth/register",
            json={"name": name, "username": username, "email": email, "password": password},
        )

    async def get_current_user(self) -> dict:
        return await self.gateway.get("/auth/me")

    async def update_profile(self, data: dict) -> dict:
        updated = await self.gateway.put("/users/me", json=data)
        # Some deployments drop avatarUrl from the echo
        if isinstance(updated, dict) and data.get("avatarUrl") and not updated.get("avatarUrl"):
            logger.warning("Profile response missing avatarUrl, keeping the requested value")
            updated["avatarUrl"] = data["avatarUrl"]
        return updated

    async def change_password(self, current_password: str, new_password: str) -> dict:
        return await self.gateway.post(
            "/users/password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    async def delete_account(self, password: str) -> dict | None:
        return await self.gateway.delete("/users/delete", json={"password": password})

    async def request_password_reset(self, email: str) -> dict:
        return await self.gateway.post("/auth/forgot-password", json={"email": email})

    async def verify_reset_token(self, token: str) -> dict:
        return await self.gateway.get(f"/auth/verify-reset-token/{token}")

    async def reset_password(self, token: str, new_password: str) -> dict:
        return await self.gateway.post(
            "/auth/reset-password", json={"token": token, "newPassword": new_password}
        )
