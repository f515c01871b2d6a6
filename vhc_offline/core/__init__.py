from .cache_store import Cache, CacheStorage
from .clients import Client, ClientRegistry
from .connectivity import ConnectivityMonitor, ConnectivityState, NetworkStatus, OfflineOperations
from .fetcher import NetworkFetcher
from .lifecycle import LifecycleManager, LifecycleState
from .normalizer import URLNormalizer, url_normalizer
from .offline_storage import OfflineStorage
from .push import Notification, build_notification, handle_notification_click
from .replayer import PendingReplayer
from .router import RequestRouter, Strategy
from .strategies import network_first_api, cache_first_image, network_first_static
from .sync import SyncCoordinator, SyncManager
from .worker import OfflineWorker

__all__ = [
    'Cache',
    'CacheStorage',
    'Client',
    'ClientRegistry',
    'ConnectivityMonitor',
    'ConnectivityState',
    'NetworkStatus',
    'OfflineOperations',
    'NetworkFetcher',
    'LifecycleManager',
    'LifecycleState',
    'URLNormalizer',
    'url_normalizer',
    'OfflineStorage',
    'Notification',
    'build_notification',
    'handle_notification_click',
    'PendingReplayer',
    'RequestRouter',
    'Strategy',
    'network_first_api',
    'cache_first_image',
    'network_first_static',
    'SyncCoordinator',
    'SyncManager',
    'OfflineWorker',
]
