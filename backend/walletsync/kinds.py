"""Distributable kinds served by the wallet web service.

A kind bundles everything that differs between passes and orders: the type
identifier that namespaces items, the Authorization scheme, the artifact media
type and the names used on the wire. The core logic is shared and only ever
reads these values.
"""
from dataclasses import dataclass

from .models import Item


@dataclass(frozen=True)
class DistributableKind:
    """Capability description of one family of distributable items."""

    type_identifier: str
    auth_scheme: str = "Bearer"
    media_type: str = "application/octet-stream"
    # Path segment of the fetch route
    resource: str = "items"
    since_param: str = "changedSince"
    ids_field: str = "itemIds"
    watermark_field: str = "lastModified"
    bundle_member: str = "item"
    bundle_extension: str = "bin"
    name: str = "Wallet"

    def id_of(self, item: Item) -> str:
        return item.id

    def token_of(self, item: Item) -> str:
        return item.authentication_token


def pass_kind(type_identifier: str) -> DistributableKind:
    """Apple Wallet passes (.pkpass)."""
    return DistributableKind(
        type_identifier=type_identifier,
        auth_scheme="ApplePass",
        media_type="application/vnd.apple.pkpass",
        resource="passes",
        since_param="passesUpdatedSince",
        ids_field="serialNumbers",
        watermark_field="lastUpdated",
        bundle_member="pass",
        bundle_extension="pkpass",
        name="WalletPasses",
    )


def order_kind(type_identifier: str) -> DistributableKind:
    """Apple Wallet orders (.order)."""
    return DistributableKind(
        type_identifier=type_identifier,
        auth_scheme="AppleOrder",
        media_type="application/vnd.apple.order",
        resource="orders",
        since_param="ordersModifiedSince",
        ids_field="orderIdentifiers",
        watermark_field="lastModified",
        bundle_member="order",
        bundle_extension="order",
        name="WalletOrders",
    )
