"""Cookie-backed key/value storage in the backend platform's SSR cookie format."""
import base64
import logging
import re

from core.cookies import CookieJar, CookieOptions, CookieToSet


logger = logging.getLogger(__name__)

# Browsers reject cookies above ~4KB; values longer than this are split into chunks
MAX_CHUNK_SIZE = 3180
BASE64_PREFIX = "base64-"
CODE_VERIFIER_SUFFIX = "-code-verifier"


def encode_value(value: str) -> str:
    """Encode a value as 'base64-' followed by unpadded base64url."""
    encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{BASE64_PREFIX}{encoded}"


def decode_value(raw: str) -> str:
    """Decode a stored value; values without the prefix are returned as-is."""
    if not raw.startswith(BASE64_PREFIX):
        return raw
    encoded = raw[len(BASE64_PREFIX):]
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding).decode("utf-8")


def split_chunks(value: str, size: int = MAX_CHUNK_SIZE) -> list[str]:
    """Split a value into chunks of at most `size` characters."""
    if len(value) <= size:
        return [value]
    return [value[i:i + size] for i in range(0, len(value), size)]


class CookieSessionStorage:
    """
    Storage adapter that keeps string values in (possibly chunked) cookies.

    A value under key `k` lives either in the cookie `k` or in `k.0`, `k.1`, ...
    when it is too large for a single cookie.
    """

    def __init__(self, cookies: CookieJar, options: CookieOptions | None = None) -> None:
        self._cookies = cookies
        self._options = options or CookieOptions()

    def _chunk_names(self, key: str) -> list[str]:
        """Names of existing chunk cookies for a key, ordered by index."""
        pattern = re.compile(rf"^{re.escape(key)}\.(\d+)$")
        indexed = []
        for name, _ in self._cookies.read():
            match = pattern.match(name)
            if match:
                indexed.append((int(match.group(1)), name))
        return [name for _, name in sorted(indexed)]

    def get_item(self, key: str) -> str | None:
        """Return the decoded value for a key, or None if absent or unreadable."""
        raw = self._cookies.get(key)
        if raw is None:
            parts = []
            index = 0
            while (chunk := self._cookies.get(f"{key}.{index}")) is not None:
                parts.append(chunk)
                index += 1
            if not parts:
                return None
            raw = "".join(parts)
        try:
            return decode_value(raw)
        except (ValueError, UnicodeDecodeError):
            logger.warning("Discarding undecodable cookie value for %s", key)
            return None

    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous single or chunked cookie."""
        chunks = split_chunks(encode_value(value))
        if len(chunks) == 1:
            names = [key]
        else:
            names = [f"{key}.{i}" for i in range(len(chunks))]

        stale = [name for name in [key, *self._chunk_names(key)] if name not in names]
        batch = [CookieToSet(name, chunk, self._options) for name, chunk in zip(names, chunks)]
        batch.extend(
            CookieToSet(name, "", self._options.expired())
            for name in stale
            if self._cookies.get(name) is not None
        )
        self._cookies.write(batch)

    def remove_item(self, key: str) -> None:
        """Expire the cookie for a key and all of its chunks."""
        names = [
            name
            for name in [key, *self._chunk_names(key)]
            if self._cookies.get(name) is not None
        ]
        if names:
            self._cookies.write(CookieToSet(name, "", self._options.expired()) for name in names)
