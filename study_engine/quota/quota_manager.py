from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from pydantic import BaseModel

from study_engine.quota.service_state import AIMode, ServiceState, ServiceStateStore
from study_engine.utils import get_logger, log_quota_event

LOG = get_logger()


class QuotaCheck(BaseModel):
    can_use: bool
    reason: Optional[str] = None


class Remaining(BaseModel):
    daily: int
    monthly: int


class UsageWindow(BaseModel):
    used: int
    total: int
    remaining: int


class UsageInfo(BaseModel):
    daily: UsageWindow
    monthly: UsageWindow
    can_use_ai: bool
    current_mode: AIMode


class QuotaManager:
    """Daily/monthly call counters over the injected ServiceState.

    Counters reset lazily: every check compares the stored reset dates with
    today's date instead of relying on a timer.
    """

    def __init__(self, state: ServiceState, state_store: ServiceStateStore, today: Callable[[], date] = date.today):
        self.state = state
        self.state_store = state_store
        self._today = today

    def persist(self) -> None:
        self.state_store.save(self.state)

    def reset_if_needed(self) -> bool:
        today = self._today()
        changed = False
        if today != self.state.last_reset:
            self.state.used_quota = 0
            self.state.last_reset = today
            changed = True
        last_monthly = self.state.last_monthly_reset
        if (today.year, today.month) != (last_monthly.year, last_monthly.month):
            self.state.used_monthly_quota = 0
            self.state.last_monthly_reset = today
            changed = True
        if changed:
            self.persist()
            log_quota_event('reset', self.state.used_quota, self.state.daily_quota, self.state.used_monthly_quota, self.state.monthly_quota)
        return changed

    def check_quota(self) -> QuotaCheck:
        if self.state.mode == AIMode.OFFLINE:
            return QuotaCheck(can_use=True)
        self.reset_if_needed()
        s = self.state
        if s.used_quota >= s.daily_quota:
            return QuotaCheck(can_use=False, reason=f'일일 할당량 초과 ({s.used_quota}/{s.daily_quota})')
        if s.used_monthly_quota >= s.monthly_quota:
            return QuotaCheck(can_use=False, reason=f'월간 할당량 초과 ({s.used_monthly_quota}/{s.monthly_quota})')
        return QuotaCheck(can_use=True)

    def increment_usage(self) -> None:
        self.reset_if_needed()
        self.state.used_quota += 1
        self.state.used_monthly_quota += 1
        self.persist()
        log_quota_event('increment', self.state.used_quota, self.state.daily_quota, self.state.used_monthly_quota, self.state.monthly_quota)

    def get_remaining(self) -> Remaining:
        self.reset_if_needed()
        return Remaining(
            daily=max(0, self.state.daily_quota - self.state.used_quota),
            monthly=max(0, self.state.monthly_quota - self.state.used_monthly_quota),
        )

    def usage_info(self) -> UsageInfo:
        remaining = self.get_remaining()
        check = self.check_quota()
        s = self.state
        return UsageInfo(
            daily=UsageWindow(used=s.used_quota, total=s.daily_quota, remaining=remaining.daily),
            monthly=UsageWindow(used=s.used_monthly_quota, total=s.monthly_quota, remaining=remaining.monthly),
            can_use_ai=check.can_use,
            current_mode=s.mode,
        )
