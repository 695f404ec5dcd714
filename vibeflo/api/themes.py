from vibeflo.api.base import ResourceAPI, require_numeric_id


class ThemeAPI(ResourceAPI):
    async def get_all_themes(self) -> list[dict]:
        return await self._fetch_list("/themes")

    async def get_theme(self, theme_id) -> dict:
        theme_id = require_numeric_id(theme_id, "theme")
        return await self.gateway.get(f"/themes/{theme_id}")

    async def get_public_custom_themes(self) -> list[dict]:
        return await self._fetch_list("/themes/custom/public")

    async def get_user_custom_themes(self) -> list[dict]:
        return await self._fetch_list("/themes/custom/user")

    async def create_custom_theme(self, data: dict) -> dict:
        return await self.gateway.post("/themes/custom", json=data)

    async def update_custom_theme(self, theme_id, data: dict) -> dict:
        theme_id = require_numeric_id(theme_id, "theme")
        return await self.gateway.put(f"/themes/custom/{theme_id}", json=data)

    async def delete_custom_theme(self, theme_id) -> dict | None:
        theme_id = require_numeric_id(theme_id, "theme")
        return await self.gateway.delete(f"/themes/custom/{theme_id}")

    async def get_user_theme(self) -> dict | None:
        return await self.gateway.get("/themes/user")

    async def set_user_theme(self, theme_id) -> dict:
        theme_id = require_numeric_id(theme_id, "theme")
        return await self.gateway.put("/themes/user", json={"theme_id": theme_id})
