"""JSON-backed configuration objects that are written back atomically."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ConfigWrapper(Generic[T]):
    """Holds a configuration object together with the file it is saved to.

    The wrapped object is either plain JSON data or an object with a
    ``to_json()`` method. Attribute lookups that the wrapper does not answer
    itself are forwarded to the wrapped object. Used as a context manager,
    the configuration is saved when the block is left.
    """

    def __init__(self, path: str | os.PathLike[str], config: T) -> None:
        self.path = Path(path)
        self.config = config

    def __getattr__(self, name: str) -> Any:
        if name == "config":
            raise AttributeError(name)
        return getattr(self.config, name)

    def _payload(self) -> bytes:
        to_json = getattr(self.config, "to_json", None)
        data = to_json() if callable(to_json) else self.config
        return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")

    def save(self) -> None:
        """Write the configuration through a temporary file and replace the target.

        This guards against partially written files if the process dies
        in the middle of a write.
        """
        payload = self._payload()
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def __enter__(self) -> ConfigWrapper[T]:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.save()