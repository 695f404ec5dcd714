from vibeflo.api.base import ResourceAPI


class SettingsAPI(ResourceAPI):
    async def get_user_settings(self) -> dict:
        return await self.gateway.get("/settings")

    async def update_user_settings(self, data: dict) -> dict:
        return await self.gateway.put("/settings", json=data)
