"""
Unit tests for rate-shaping decorators and image URL helpers.
"""

import threading
from unittest.mock import Mock

import pytest

from admin_panel.utils import debounce, optimize_image_url, throttle


@pytest.mark.unit
class TestThrottle:
    """Test leading-edge throttling."""

    def test_calls_inside_window_are_dropped(self, fake_clock):
        func = Mock(return_value='ran')
        throttled = throttle(1.0, clock=fake_clock)(func)

        assert throttled('a') == 'ran'
        assert throttled('b') is None

        fake_clock.advance(0.5)
        assert throttled('c') is None

        fake_clock.advance(0.5)
        assert throttled('d') == 'ran'

        assert [call.args[0] for call in func.call_args_list] == ['a', 'd']

    def test_preserves_metadata(self, fake_clock):
        @throttle(1.0, clock=fake_clock)
        def on_scroll():
            """Handle scroll."""

        assert on_scroll.__name__ == 'on_scroll'
        assert on_scroll.__doc__ == 'Handle scroll.'

    def test_negative_limit(self):
        with pytest.raises(ValueError):
            throttle(-1)


@pytest.mark.unit
class TestDebounce:
    """Test trailing-edge debouncing."""

    def test_only_last_call_runs(self):
        calls = []
        done = threading.Event()

        @debounce(0.05)
        def save(value):
            calls.append(value)
            done.set()

        save(1)
        save(2)
        save(3)

        assert done.wait(2.0)
        assert calls == [3]

    def test_cancel_drops_pending_call(self):
        func = Mock()
        debounced = debounce(10)(func)

        debounced('x')
        debounced.cancel()

        func.assert_not_called()

    def test_failure_is_logged_not_raised(self):
        done = threading.Event()

        @debounce(0)
        def explode():
            done.set()
            raise RuntimeError("boom")

        explode()

        assert done.wait(2.0)

    def test_negative_wait(self):
        with pytest.raises(ValueError):
            debounce(-0.1)


@pytest.mark.unit
class TestOptimizeImageUrl:
    """Test image proxy URL rewriting."""

    def test_external_url_routed_through_proxy(self):
        url = optimize_image_url('https://cdn.example.com/a.png', width=200)

        assert url == 'https://images.weserv.nl/?url=https%3A%2F%2Fcdn.example.com%2Fa.png&w=200&q=80&f=webp'

    def test_width_and_height(self):
        url = optimize_image_url('http://cdn.example.com/a.jpg?v=2', width=320, height=240)

        assert url.endswith('&w=320&h=240&q=80&f=webp')
        assert 'a.jpg%3Fv%3D2' in url

    def test_no_dimensions(self):
        assert optimize_image_url('https://x.example.com/i.gif').endswith('?url=https%3A%2F%2Fx.example.com%2Fi.gif&q=80&f=webp')

    @pytest.mark.parametrize('src', ['/static/logo.png', 'data:image/png;base64,AAAA', 'logo.svg'])
    def test_local_sources_unchanged(self, src):
        assert optimize_image_url(src, width=100) == src

    @pytest.mark.parametrize('src', ['', None])
    def test_empty_source(self, src):
        assert optimize_image_url(src) == ''
