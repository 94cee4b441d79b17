"""
Unit tests for the ephemeral TTL cache.

Time is driven by the ``fake_clock`` fixture, so expiry is exercised without
sleeping.
"""

from collections import Counter, OrderedDict, defaultdict, namedtuple
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from admin_panel.performance import EphemeralCache, SerializationError, structural_clone


@pytest.mark.unit
class TestCacheStorage:
    """Test clone-on-write and clone-on-read semantics."""

    def test_set_then_get(self, cache):
        cache.set('user:1', {'name': 'Ada', 'roles': ['admin']})

        assert cache.get('user:1') == {'name': 'Ada', 'roles': ['admin']}

    def test_caller_mutation_does_not_affect_stored_value(self, cache):
        value = {'roles': ['admin']}
        cache.set('user:1', value)

        value['roles'].append('owner')

        assert cache.get('user:1') == {'roles': ['admin']}

    def test_returned_value_is_independent(self, cache):
        cache.set('user:1', {'roles': ['admin']})

        first = cache.get('user:1')
        first['roles'].append('owner')

        assert cache.get('user:1') == {'roles': ['admin']}
        assert cache.get('user:1') is not cache.get('user:1')

    def test_missing_key_returns_default(self, cache):
        assert cache.get('missing') is None
        assert cache.get('missing', 'fallback') == 'fallback'

    def test_overwrite_replaces_value(self, cache):
        cache.set('k', 1)
        cache.set('k', 2)

        assert cache.get('k') == 2
        assert cache.size() == 1

    def test_delete(self, cache):
        cache.set('k', 1)

        assert cache.delete('k') is True
        assert cache.delete('k') is False
        assert 'k' not in cache

    def test_clear_is_idempotent(self, cache):
        cache.set('a', 1)
        cache.set('b', 2)

        cache.clear()
        cache.clear()

        assert cache.size() == 0

    def test_invalid_ttl(self, cache):
        with pytest.raises(ValueError):
            cache.set('k', 1, ttl=0)
        with pytest.raises(ValueError):
            EphemeralCache(default_ttl=-1)


@pytest.mark.unit
class TestCacheExpiry:
    """Test per-entry time-to-live."""

    def test_entry_live_until_ttl_elapses(self, cache, fake_clock):
        cache.set('k', 'v', ttl=10)

        fake_clock.advance(10)
        assert cache.get('k') == 'v'

        fake_clock.advance(0.01)
        assert cache.get('k') is None

    def test_default_ttl_is_five_minutes(self, cache, fake_clock):
        cache.set('k', 'v')

        fake_clock.advance(299)
        assert 'k' in cache

        fake_clock.advance(2)
        assert 'k' not in cache

    def test_stale_entry_is_a_miss_without_sweep(self, cache, fake_clock):
        cache.set('k', 'v', ttl=1)
        fake_clock.advance(5)

        assert cache.get('k') is None
        assert cache.stats()['misses'] == 1

    def test_overwrite_restarts_ttl(self, cache, fake_clock):
        cache.set('k', 'old', ttl=10)
        fake_clock.advance(8)
        cache.set('k', 'new', ttl=10)
        fake_clock.advance(8)

        assert cache.get('k') == 'new'

    def test_entries_expire_independently(self, cache, fake_clock):
        cache.set('short', 1, ttl=5)
        cache.set('long', 2, ttl=50)

        fake_clock.advance(10)

        assert cache.size() == 1
        assert cache.get('long') == 2

    def test_sweep_removes_stale_entries(self, cache, fake_clock):
        cache.set('a', 1, ttl=5)
        cache.set('b', 2, ttl=5)
        cache.set('c', 3, ttl=60)

        fake_clock.advance(6)

        assert cache.sweep() == 2
        assert cache.sweep() == 0
        assert len(cache) == 1

    def test_size_updates_gauge(self, cache, metrics_collector):
        cache.set('a', 1)
        cache.set('b', 2)

        cache.size()

        assert metrics_collector.get_sample_value('cache_entries') == 2.0


@pytest.mark.unit
class TestCacheStatistics:
    """Test hit/miss accounting."""

    def test_hit_rate_none_before_first_lookup(self, cache):
        cache.set('k', 1)

        assert cache.hit_rate() is None
        assert cache.stats() == {'size': 1, 'hits': 0, 'misses': 0, 'hit_rate': None}

    def test_hit_rate_reflects_lookups(self, cache):
        cache.set('k', 1)

        cache.get('k')
        cache.get('k')
        cache.get('k')
        cache.get('missing')

        assert cache.hit_rate() == pytest.approx(0.75)

    def test_lookup_counters_exported(self, cache, metrics_collector):
        cache.set('k', 1)
        cache.get('k')
        cache.get('missing')
        cache.get('missing')

        assert metrics_collector.get_sample_value('cache_lookups_total', {'result': 'hit'}) == 1.0
        assert metrics_collector.get_sample_value('cache_lookups_total', {'result': 'miss'}) == 2.0

    def test_contains_does_not_count_lookups(self, cache):
        cache.set('k', 1)

        assert 'k' in cache
        assert cache.hit_rate() is None

    def test_reset_stats(self, cache):
        cache.get('missing')
        cache.reset_stats()

        assert cache.hit_rate() is None


@pytest.mark.unit
class TestStructuralClone:
    """Test which values can be cached."""

    def test_nested_containers_are_rebuilt(self):
        original = {'items': [1, (2, 3), {4, 5}], 'frozen': frozenset({'a'})}

        clone = structural_clone(original)

        assert clone == original
        assert clone is not original
        assert clone['items'] is not original['items']

    def test_immutable_scalars_supported(self):
        value = [None, True, 1, 1.5, 'text', b'raw', Decimal('1.10'), datetime(2024, 1, 1, tzinfo=timezone.utc)]

        assert structural_clone(value) == value

    def test_arbitrary_objects_rejected(self, cache):
        class Widget:
            pass

        with pytest.raises(SerializationError) as exc_info:
            cache.set('widget', {'nested': [Widget()]})

        assert exc_info.value.value_type == 'Widget'
        assert exc_info.value.path == '$.nested[0]'
        assert 'widget' not in cache

    def test_callables_rejected(self, cache):
        with pytest.raises(SerializationError):
            cache.set('fn', lambda: None)

    def test_cycles_rejected(self, cache):
        looped = {'name': 'loop'}
        looped['self'] = looped

        with pytest.raises(SerializationError) as exc_info:
            cache.set('loop', looped)

        assert exc_info.value.error_code == 'SERIALIZATION_ERROR'

    def test_shared_references_without_cycle_are_allowed(self):
        shared = [1, 2]

        clone = structural_clone({'a': shared, 'b': shared})

        assert clone == {'a': [1, 2], 'b': [1, 2]}

    def test_failed_overwrite_keeps_previous_value(self, cache):
        cache.set('k', {'ok': True})

        with pytest.raises(SerializationError):
            cache.set('k', {'bad': object()})

        assert cache.get('k') == {'ok': True}

    def test_namedtuple_keeps_its_type(self, cache):
        Point = namedtuple('Point', ['x', 'y'])
        cache.set('p', Point(1, [2]))

        point = cache.get('p')

        assert type(point) is Point
        assert point.x == 1
        assert point.y == [2]

    def test_defaultdict_keeps_default_factory(self, cache):
        groups = defaultdict(list)
        groups['admins'].append('ada')
        cache.set('groups', groups)

        restored = cache.get('groups')

        assert type(restored) is defaultdict
        assert restored['missing'] == []
        assert restored['admins'] == ['ada']

    def test_ordered_dict_and_counter_keep_their_type(self):
        ordered = OrderedDict([('b', 1), ('a', 2)])
        counts = Counter({'LCP': 3, 'CLS': 1})

        assert type(structural_clone(ordered)) is OrderedDict
        assert list(structural_clone(ordered)) == ['b', 'a']
        assert type(structural_clone(counts)) is Counter
        assert structural_clone(counts) == counts

    def test_unsupported_container_subclass_rejected(self, cache):
        class TaggedList(list):
            pass

        class TaggedDict(dict):
            pass

        with pytest.raises(SerializationError) as exc_info:
            cache.set('tagged', {'items': TaggedList([1])})
        assert exc_info.value.value_type == 'TaggedList'

        with pytest.raises(SerializationError):
            cache.set('tagged', TaggedDict(a=1))
