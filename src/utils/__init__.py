"""
Utility modules for the broker API service
"""
from .config_loader import BrokerConfig, load_broker_config, resolve_log_level

__all__ = [
    'BrokerConfig',
    'load_broker_config',
    'resolve_log_level',
]
