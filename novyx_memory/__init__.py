"""
novyx-memory - durable, queryable memory for conversational agents.
"""

__version__ = "0.2.0"

from novyx_memory.agent.middleware import MemoryMiddleware
from novyx_memory.client.remote import MemoryClient
from novyx_memory.config.schema import MemoryConfig

__all__ = ["MemoryClient", "MemoryConfig", "MemoryMiddleware", "__version__"]
