"""Artifact builder contract and bundle assembly.

Producing and signing the archive itself happens outside this package; a
builder only has to turn an item's user data into bytes.
"""
import importlib
import inspect
import io
import zipfile
from typing import Awaitable, List, Optional, Protocol, Union

from ..models import UserData

MIN_BUNDLE_SIZE = 2
MAX_BUNDLE_SIZE = 10


class ArtifactBuilder(Protocol):
    """Anything with a sync or async ``build(user_data) -> bytes``."""

    def build(self, user_data: UserData) -> Union[bytes, Awaitable[bytes]]:
        ...


async def run_builder(builder: ArtifactBuilder, user_data: UserData) -> bytes:
    """Invoke ``builder`` and await the result if it is a coroutine."""
    result = builder.build(user_data)
    if inspect.isawaitable(result):
        result = await result
    return bytes(result)


def bundle_artifacts(artifacts: List[bytes], member_name: str, extension: str) -> bytes:
    """Zip 2 to 10 artifacts as ``<member_name><i>.<extension>``.

    Raises:
        ValueError: If the artifact count is out of range
    """
    if not MIN_BUNDLE_SIZE <= len(artifacts) <= MAX_BUNDLE_SIZE:
        raise ValueError(
            f"A bundle needs between {MIN_BUNDLE_SIZE} and {MAX_BUNDLE_SIZE} artifacts, got {len(artifacts)}"
        )

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for i, content in enumerate(artifacts):
            archive.writestr(f"{member_name}{i}.{extension}", content)
    return buffer.getvalue()


class JsonPayloadBuilder:
    """Builder that returns the raw JSON payload, unsigned.

    For development and tests where no signing setup is available.
    """

    def build(self, user_data: UserData) -> bytes:
        return (user_data.payload or "{}").encode("utf-8")


def load_builder(path: Optional[str]) -> ArtifactBuilder:
    """Instantiate the builder named by a ``module:attribute`` path.

    The attribute may be a builder instance or a zero-argument factory.
    Without a path the JSON payload builder is used.
    """
    if not path:
        return JsonPayloadBuilder()

    module_name, _, attribute = path.partition(":")
    if not attribute:
        raise ValueError(f"Builder path must look like 'module:attribute', got {path!r}")
    target = getattr(importlib.import_module(module_name), attribute)
    if isinstance(target, type) or not hasattr(target, "build"):
        target = target()
    return target
