import json
from datetime import date

from study_engine.quota import AIMode, QuotaManager, ServiceState, ServiceStateStore


def _manager(store, today, **state_kw):
    state_kw.setdefault('mode', AIMode.FREE)
    state_kw.setdefault('last_reset', today)
    state_kw.setdefault('last_monthly_reset', today)
    state = ServiceState(**state_kw)
    state_store = ServiceStateStore(store, 'test:state')
    state_store.save(state)
    return QuotaManager(state, state_store, today=lambda: today), state_store


def test_last_call_of_the_day_is_allowed_once(memory_store, fixed_today):
    qm, store = _manager(memory_store, fixed_today, daily_quota=5, used_quota=4)
    assert qm.check_quota().can_use
    qm.increment_usage()
    check = qm.check_quota()
    assert not check.can_use
    assert '5/5' in check.reason
    assert store.load().used_quota == 5
    assert store.load().used_monthly_quota == 1


def test_daily_rollover_resets_counter(memory_store, fixed_today):
    qm, store = _manager(memory_store, fixed_today, daily_quota=5, used_quota=5, last_reset=date(2024, 3, 14))
    assert qm.check_quota().can_use
    assert qm.state.used_quota == 0
    assert qm.state.last_reset == fixed_today
    assert store.load().used_quota == 0


def test_monthly_rollover(memory_store, fixed_today):
    qm, _ = _manager(memory_store, fixed_today, monthly_quota=3, used_monthly_quota=3, last_monthly_reset=date(2024, 2, 20))
    assert qm.check_quota().can_use
    assert qm.state.used_monthly_quota == 0


def test_monthly_limit_blocks(memory_store, fixed_today):
    qm, _ = _manager(memory_store, fixed_today, monthly_quota=3, used_monthly_quota=3)
    check = qm.check_quota()
    assert not check.can_use
    assert '월간' in check.reason


def test_offline_mode_always_allowed(memory_store, fixed_today):
    qm, _ = _manager(memory_store, fixed_today, mode=AIMode.OFFLINE, daily_quota=1, used_quota=9)
    assert qm.check_quota().can_use


def test_remaining_and_usage_info(memory_store, fixed_today):
    qm, _ = _manager(memory_store, fixed_today, daily_quota=10, used_quota=3, monthly_quota=100, used_monthly_quota=40)
    remaining = qm.get_remaining()
    assert (remaining.daily, remaining.monthly) == (7, 60)
    info = qm.usage_info()
    assert info.daily.used == 3 and info.daily.total == 10
    assert info.can_use_ai
    assert info.current_mode == AIMode.FREE


def test_state_store_round_trip_and_bad_payload(memory_store, fixed_today):
    store = ServiceStateStore(memory_store, 'test:state')
    assert store.load() is None
    default = ServiceState(mode=AIMode.MOCK, last_reset=fixed_today, last_monthly_reset=fixed_today, api_key='sk-x')
    assert store.load_or_default(default) is default
    loaded = store.load()
    assert loaded == default
    assert json.loads(memory_store.get('test:state'))['mode'] == 'mock'

    memory_store.set('test:state', '{not json')
    assert store.load() is None
