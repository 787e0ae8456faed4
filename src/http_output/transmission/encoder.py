"""
Request body encoders.

One encoder instance is owned by a connection and reused for every request.
The buffer is reset before each marshal, so an encoder must never be used
from two threads at once.
"""
import gzip
import io
import json
from typing import Any, Iterable, MutableMapping, Optional

from .errors import ConfigError, EncodeError

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"


def _dumps(obj: Any) -> bytes:
    try:
        return json.dumps(obj, separators=(",", ":"), allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise EncodeError(cause=e) from e


class JSONEncoder:
    """Plain JSON body."""

    def __init__(self, content_type: Optional[str] = None):
        self.content_type = content_type
        self._buf = io.BytesIO()
        self._lines = False

    def reset(self):
        self._buf = io.BytesIO()

    def marshal(self, obj: Any):
        """Encode a single object, replacing the previous buffer."""
        self.reset()
        self._lines = False
        self._write(_dumps(obj))

    def marshal_lines(self, objs: Iterable[Any]):
        """Encode objects as newline-delimited JSON."""
        # Encode everything first so a failure leaves no partial body behind.
        data = b"".join(_dumps(obj) + b"\n" for obj in objs)
        self.reset()
        self._lines = True
        self._write(data)

    def _write(self, data: bytes):
        self._buf.write(data)

    def getvalue(self) -> bytes:
        return self._buf.getvalue()

    def reader(self) -> io.BytesIO:
        return io.BytesIO(self.getvalue())

    def add_header(self, headers: MutableMapping[str, str]):
        if self.content_type:
            headers["Content-Type"] = self.content_type
        elif self._lines:
            headers["Content-Type"] = NDJSON_CONTENT_TYPE
        else:
            headers["Content-Type"] = JSON_CONTENT_TYPE


class GzipEncoder(JSONEncoder):
    """JSON body passed through gzip at a fixed compression level."""

    def __init__(self, level: int, content_type: Optional[str] = None):
        if not 1 <= level <= 9:
            raise ConfigError(f"invalid gzip compression level: {level}")
        super().__init__(content_type)
        self.level = level

    def _write(self, data: bytes):
        with gzip.GzipFile(fileobj=self._buf, mode="wb", compresslevel=self.level) as gz:
            gz.write(data)

    def add_header(self, headers: MutableMapping[str, str]):
        super().add_header(headers)
        headers["Content-Encoding"] = "gzip"


def make_encoder(compression_level: int = 0, content_type: Optional[str] = None) -> JSONEncoder:
    """
    Select the encoder variant for a compression level.

    Args:
        compression_level: 0 disables compression, 1-9 selects gzip level
        content_type: Optional Content-Type override

    Raises:
        ConfigError: If the level is outside 0-9
    """
    if compression_level == 0:
        return JSONEncoder(content_type)
    return GzipEncoder(compression_level, content_type)
