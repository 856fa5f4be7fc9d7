"""Wallet web service endpoints for one distributable kind.

Routes embed the kind's literal type identifier, so a request naming any
other type matches no route and gets a 404 before authentication runs.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..errors import BadRequest, WalletError
from ..models import Item
from ..schemas.wallet import LogEntriesRequest, PushTokenRequest
from ..services.wallet_service import WalletService
from ..utils.timestamps import format_epoch, parse_epoch

logger = logging.getLogger(__name__)


async def wallet_error_handler(request: Request, exc: WalletError) -> Response:
    """Map wallet outcomes to their status codes; 204 and 304 have no body."""
    if exc.status_code < 400:
        return Response(status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_wallet_router(
    service: WalletService,
    prefix: str = "",
    include_log: bool = True,
) -> APIRouter:
    """Build the ``/v1`` routes for ``service``'s kind, mounted under ``prefix``.

    Args:
        service: Wallet service of the kind being served
        prefix: Route group, e.g. ``/api/passes``; bare ``/v1/...`` paths when empty
        include_log: Whether to serve ``POST /v1/log`` from this router
    """
    kind = service.kind
    type_identifier = kind.type_identifier
    router = APIRouter(prefix=prefix, tags=[kind.resource])

    registrations_path = "/v1/devices/{device_library_id}/registrations/" + type_identifier
    item_registration_path = registrations_path + "/{item_id}"
    artifact_path = f"/v1/{kind.resource}/{type_identifier}" + "/{item_id}"

    async def require_item(item_id: str, authorization: Optional[str] = Header(None)) -> Item:
        """Authorize the bearer credential for the item in the path."""
        token = service.auth_gate.extract_token(authorization)
        return await service.auth_gate.authorize(item_id, token)

    @router.post(item_registration_path, status_code=201)
    async def register_device(
        device_library_id: str,
        request: Request,
        item: Item = Depends(require_item),
    ):
        """Register a device for push updates of an item.

        201 when the registration is new, 200 when it already existed.
        """
        logger.debug("Called register device")
        try:
            body = PushTokenRequest.model_validate_json(await request.body())
        except ValidationError:
            raise BadRequest("Invalid registration body")

        status = await service.registrations.register(
            device_library_id, body.push_token, kind.id_of(item)
        )
        return Response(status_code=status.value)

    @router.delete(item_registration_path)
    async def unregister_device(device_library_id: str, item: Item = Depends(require_item)):
        """Stop sending updates for an item to a device."""
        logger.debug("Called unregister device")
        await service.registrations.unregister(device_library_id, kind.id_of(item))
        return Response(status_code=200)

    @router.get(registrations_path)
    async def changed_items(device_library_id: str, request: Request):
        """Ids of the device's items updated since the given watermark."""
        logger.debug("Called changed items")
        since = parse_epoch(request.query_params.get(kind.since_param))
        changed = await service.registrations.devices_changed_since(
            device_library_id, type_identifier, since
        )
        return {
            kind.ids_field: changed.item_ids,
            kind.watermark_field: format_epoch(changed.last_modified),
        }

    @router.get(artifact_path)
    async def latest_artifact(
        item: Item = Depends(require_item),
        if_modified_since: Optional[str] = Header(None),
    ):
        """Latest artifact for an item, if newer than If-Modified-Since.

        Both If-Modified-Since and Last-Modified carry epoch seconds.
        """
        logger.debug("Called latest artifact")
        artifact = await service.fetcher.fetch(
            kind.id_of(item), type_identifier, parse_epoch(if_modified_since)
        )
        return Response(
            content=artifact.content,
            media_type=kind.media_type,
            headers={"Last-Modified": format_epoch(artifact.last_modified)},
        )

    if include_log:
        @router.post("/v1/log")
        async def log_messages(request: Request):
            """Record diagnostic messages sent by wallet clients."""
            try:
                entries = LogEntriesRequest.model_validate_json(await request.body())
            except ValidationError:
                raise BadRequest("Invalid log body")

            for entry in entries.logs:
                logger.info(f"{kind.name}: {entry}")
            return Response(status_code=200)

    return router
