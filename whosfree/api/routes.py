"""HTTP routes for whosfree."""

from __future__ import annotations

import logging

from aiohttp import web

from whosfree.domain.service import AvailabilityService
from whosfree.exceptions import AuthenticationError, ICSParseError

logger = logging.getLogger(__name__)


def register_api_routes(
    app: web.Application,
    service: AvailabilityService,
    user_header: str,
) -> None:
    """Register the JSON API.

    Args:
        app: aiohttp web application
        service: Availability service backing the handlers
        user_header: Header carrying the user id set by the fronting auth proxy
    """

    def _require_user(request: web.Request) -> str:
        user_id = request.headers.get(user_header, "").strip()
        if not user_id:
            raise AuthenticationError(f"missing {user_header} header")
        return user_id

    async def health_check(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def group_availability(request: web.Request) -> web.Response:
        """Report who in the group is free, busy or unknown."""
        user_id = _require_user(request)
        group_id = request.match_info["group_id"]
        report = await service.check_group_availability(
            group_id,
            user_id,
            request.query.get("time"),
        )
        return web.json_response(report.model_dump(mode="json"))

    async def put_calendar(request: web.Request) -> web.Response:
        """Replace the caller's busy blocks with those from an ICS body."""
        user_id = _require_user(request)
        try:
            ics_content = await request.text()
        except UnicodeDecodeError as e:
            raise ICSParseError("Calendar body is not valid text") from e

        blocks = await service.upload_calendar(user_id, ics_content)
        return web.json_response(
            {
                "blocks": len(blocks),
                "busy_blocks": [block.model_dump() for block in blocks],
            }
        )

    async def delete_calendar(request: web.Request) -> web.Response:
        user_id = _require_user(request)
        removed = await service.remove_calendar(user_id)
        return web.json_response({"removed": removed})

    app.router.add_get("/api/health", health_check)
    app.router.add_get("/api/groups/{group_id}/availability", group_availability)
    app.router.add_put("/api/calendar", put_calendar)
    app.router.add_delete("/api/calendar", delete_calendar)
