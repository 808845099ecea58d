"""
Usage quota tracking and the persisted service state it guards.
"""
from .service_state import AIMode, AIProvider, ServiceState, ServiceStateStore, provider_for_mode
from .quota_manager import QuotaManager, QuotaCheck, Remaining, UsageInfo, UsageWindow

__all__ = [
	'AIMode', 'AIProvider', 'ServiceState', 'ServiceStateStore', 'provider_for_mode',
	'QuotaManager', 'QuotaCheck', 'Remaining', 'UsageInfo', 'UsageWindow',
]
