from stubloom.needle import needle as stubloom_nexus
from .messaging.bus import MessageBus
from .transaction import TransactionManager

# Global bus; the CLI installs a renderer, library use stays silent.
bus = MessageBus(nexus_instance=stubloom_nexus)

__all__ = ["bus", "stubloom_nexus", "MessageBus", "TransactionManager"]
