"""Convenience exports for service layer."""
from .auth_service import (
    create_access_token,
    decode_access_token,
    get_current_user_id,
    get_optional_user_id,
    identity_from_token,
    sign_in_anonymously,
)
from .chat_service import GlobalChat
from .document_store import (
    SERVER_TIMESTAMP,
    BaseDocumentStore,
    DocumentSnapshot,
    DocumentStore,
    StoreConnectionError,
    StoreError,
    Transaction,
    TransactionConflict,
)
from .engagement_ledger import EngagementLedger, PendingLikes
from .errors import (
    EmptyInput,
    EngagementError,
    NotAuthenticated,
    OperationInFlight,
    StoreUnavailable,
    TransactionFailed,
)
from .feed_navigator import FeedNavigator
from .feed_service import FeedSession, VideoCatalog, list_videos, seed_initial_videos, submit_video
from .gesture import GestureRecognizer, GestureState, SwipeDirection
from .identity import IdentityProvider, LocalIdentityProvider
from .memory_store import InMemoryDocumentStore
from .paths import FeedPaths
from .sql_store import SqlDocumentStore
from .store_factory import build_document_store, get_document_store, get_pending_likes, http_error

__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_current_user_id",
    "get_optional_user_id",
    "identity_from_token",
    "sign_in_anonymously",
    "GlobalChat",
    "SERVER_TIMESTAMP",
    "BaseDocumentStore",
    "DocumentSnapshot",
    "DocumentStore",
    "StoreConnectionError",
    "StoreError",
    "Transaction",
    "TransactionConflict",
    "EngagementLedger",
    "PendingLikes",
    "EmptyInput",
    "EngagementError",
    "NotAuthenticated",
    "OperationInFlight",
    "StoreUnavailable",
    "TransactionFailed",
    "FeedNavigator",
    "FeedSession",
    "VideoCatalog",
    "list_videos",
    "seed_initial_videos",
    "submit_video",
    "GestureRecognizer",
    "GestureState",
    "SwipeDirection",
    "IdentityProvider",
    "LocalIdentityProvider",
    "InMemoryDocumentStore",
    "FeedPaths",
    "SqlDocumentStore",
    "build_document_store",
    "get_document_store",
    "get_pending_likes",
    "http_error",
]
