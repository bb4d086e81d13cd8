from datetime import datetime, timezone
from uuid import uuid4

from inventory_kernel.domain.clock import DeterministicClock, SystemClock
from inventory_kernel.domain.collaborators import StaticActorResolver
from inventory_kernel.domain.workflow import Role


def test_deterministic_clock():
    clock = DeterministicClock()
    start = clock.now()
    assert start.tzinfo is not None
    assert clock.now() == start
    assert (clock.tick() - start).total_seconds() == 1
    clock.set_time(datetime(2027, 3, 1, tzinfo=timezone.utc))
    assert clock.now().year == 2027


def test_system_clock_is_utc():
    assert SystemClock().now().utcoffset().total_seconds() == 0


def test_static_resolver():
    resolver = StaticActorResolver()
    actor = uuid4()
    unit = uuid4()
    info = resolver.register(actor, "finance_manager", unit, approved=False)
    assert info.role == Role.FINANCE_MANAGER
    assert resolver.resolve(actor) == info
    assert resolver.resolve(uuid4()) is None
