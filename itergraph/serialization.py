import base64
import binascii
import json
from abc import ABC, abstractmethod
from hashlib import blake2b
from hmac import compare_digest
from threading import local as thread_context
from typing import TYPE_CHECKING, final

from zstandard import ZstdCompressor, ZstdDecompressor, ZstdError

from .exceptions import CorruptedValueError, TamperedDataError
from .fingerprint import canonical_json

if TYPE_CHECKING:  # pragma: no cover
    from typing import Any, ClassVar


class Serializer(ABC):
    @abstractmethod
    def serialize(self, value: "Any") -> bytes:
        """Serialize a value to a bytestream."""
        raise NotImplementedError()

    @abstractmethod
    def deserialize(self, data: bytes) -> "Any":
        """Deserialize a bytestream back into a value."""
        raise NotImplementedError()

    @abstractmethod
    def compress(self, data: bytes) -> bytes:
        """Compress a bytestream for storage."""
        raise NotImplementedError()

    @abstractmethod
    def decompress(self, data: bytes) -> bytes:
        """Decompress a bytestream from storage."""
        raise NotImplementedError()

    @final
    def encode(self, value: "Any") -> str:
        """Serialize and compress a value into text for storage."""
        return base64.urlsafe_b64encode(self.compress(self.serialize(value))).decode(
            "ascii"
        )

    @final
    def decode(self, text: str) -> "Any":
        """Decompress and deserialize text produced by `encode`."""
        if not text:
            raise CorruptedValueError("empty value")

        try:
            data = base64.urlsafe_b64decode(text.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as e:
            raise CorruptedValueError("invalid armor") from e

        return self.deserialize(self.decompress(data))


class JsonZstdSerializer(Serializer):
    # Zstd is not thread safe so we should ensure a unique instance per thread
    _thread_context: "ClassVar[thread_context]" = thread_context()

    def __init__(self, secret: str) -> None:
        super().__init__()
        self.secret_key: bytes = secret.encode()

    def serialize(self, value: "Any") -> bytes:
        return canonical_json(value).encode()

    def deserialize(self, data: bytes) -> "Any":
        try:
            return json.loads(data)
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptedValueError("invalid payload") from e

    @property
    def compressor(self) -> "ZstdCompressor":
        if not hasattr(self._thread_context, "compressor"):
            self._thread_context.compressor = ZstdCompressor()

        return self._thread_context.compressor

    @property
    def decompressor(self) -> "ZstdDecompressor":
        if not hasattr(self._thread_context, "decompressor"):
            self._thread_context.decompressor = ZstdDecompressor()

        return self._thread_context.decompressor

    def _signature(self, data: bytes) -> bytes:
        signer = blake2b(digest_size=16, key=self.secret_key, usedforsecurity=True)
        signer.update(data)
        return signer.hexdigest().encode()

    def compress(self, data: bytes) -> bytes:
        compressed = self.compressor.compress(data)
        return self._signature(compressed) + b"|" + compressed

    def decompress(self, compressed: bytes) -> bytes:
        try:
            signature, compressed = compressed.split(b"|", 1)
            assert compare_digest(self._signature(compressed), signature)
        except (ValueError, AssertionError) as e:
            raise TamperedDataError() from e

        try:
            return self.decompressor.decompress(compressed)
        except ZstdError as e:
            raise CorruptedValueError("invalid compressed frame") from e
