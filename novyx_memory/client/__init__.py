"""Remote memory service client."""

from novyx_memory.client.errors import ProviderError, ProviderErrorKind, classify_error
from novyx_memory.client.remote import MemoryClient

__all__ = ["MemoryClient", "ProviderError", "ProviderErrorKind", "classify_error"]
