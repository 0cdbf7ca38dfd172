"""
Ballot API service: store, core components and HTTP layer.

The core components are importable without starting the web application:
- CatalogStore: offices and candidate options
- ParticipantRegistry: registration and the eligibility rule
- BallotLedger: append-only vote record
- VotingCoordinator: atomic ballot commit
- TallyEngine: per-candidate counts
- ElectionService: facade over all of the above
"""

from .catalog import CatalogStore
from .coordinator import VotingCoordinator, parse_ballot
from .ledger import BallotLedger
from .memory import InMemoryStore
from .registry import ParticipantRegistry
from .service import ElectionService, build_store
from .store import Store, StoreTransaction
from .tally import TallyEngine

__all__ = [
    'CatalogStore',
    'VotingCoordinator',
    'parse_ballot',
    'BallotLedger',
    'InMemoryStore',
    'ParticipantRegistry',
    'ElectionService',
    'build_store',
    'Store',
    'StoreTransaction',
    'TallyEngine',
]
