"""dexter - a supervised request actor for PokéAPI lookups.

Built on a small asyncio actor runtime:
- one mailbox and one task per actor, messages handled strictly in order
- call (request/reply), cast (fire-and-forget), and info (notifications)
- supervision with restart windows and backoff
- a name registry for locating actors without holding a handle

Basic usage:
    from dexter import ActorSystem, Ok, Err, fetch, start

    async def main():
        async with ActorSystem() as system:
            await start(system)
            match await fetch(system, 25):
                case Ok(body):
                    print(body.decode())
                case Err(reason):
                    print("lookup failed:", reason)
"""

from .actor import Actor, ActorId, ActorRef, Context
from .config import (
    DexterConfig,
    LoggingConfig,
    LookupConfig,
    MailboxConfig,
    SupervisionConfig,
    discover_config,
    load_config,
)
from .errors import (
    ActorCrashedError,
    ActorStoppedError,
    ConfigError,
    DexterError,
    MailboxFullError,
    NameNotFoundError,
    NameTakenError,
)
from .lookup import LookupActor, fetch, start
from .mailbox import Mailbox, MailboxOverflowStrategy
from .messages import Envelope, Err, Lookup, MessageKind, Ok, Response
from .registry import Registry
from .supervision import SupervisionStrategy, SupervisorConfig, supervised
from .system import ActorSystem

__all__ = [
    # Core
    "Actor",
    "ActorId",
    "ActorRef",
    "ActorSystem",
    "Context",
    "Registry",
    # Messages
    "Envelope",
    "Err",
    "Lookup",
    "MessageKind",
    "Ok",
    "Response",
    # Mailbox
    "Mailbox",
    "MailboxOverflowStrategy",
    # Supervision
    "SupervisionStrategy",
    "SupervisorConfig",
    "supervised",
    # Lookup actor
    "LookupActor",
    "fetch",
    "start",
    # Configuration
    "DexterConfig",
    "LoggingConfig",
    "LookupConfig",
    "MailboxConfig",
    "SupervisionConfig",
    "discover_config",
    "load_config",
    # Errors
    "ActorCrashedError",
    "ActorStoppedError",
    "ConfigError",
    "DexterError",
    "MailboxFullError",
    "NameNotFoundError",
    "NameTakenError",
]
