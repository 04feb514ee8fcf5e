"""
Tests for the iterative improvement engine.

Validates:
  - Acceptance, exhaustion and the iteration ceiling
  - Trajectory ordering, snapshots and engine-lifetime accumulation
  - Ceiling validation and coercion
  - Propagation of failures raised by decide/update
  - Numeric helpers (close_to, trajectory_array)
"""

import functools
import logging
import math
import pickle
from decimal import Decimal
from fractions import Fraction

import numpy as np
import pytest

from fox.errors import ConfigurationError, IterationLimitExceeded
from fox.iteration.improve import (
    Improve,
    ImproveStatus,
    close_to,
    refine,
)


def at_least_four(guess):
    return 4 <= guess


def increment(guess):
    return guess + 1


# ---------- Refine Loop Tests ----------

class TestImproveLoop:
    def test_iterates_toward_goal(self):
        improve = Improve(at_least_four, increment)
        assert improve(1) == 4
        assert improve.get_trajectory() == (1, 2, 3, 4)

    def test_accepts_initial_guess_without_updating(self):
        calls = []

        def update(guess):
            calls.append(guess)
            return guess + 1

        improve = Improve(at_least_four, update)
        assert improve(4) == 4
        assert improve.get_trajectory() == (4,)
        assert calls == []

    def test_returns_initial_guess_unchanged(self):
        marker = object()
        improve = Improve(lambda guess: True, lambda guess: None)
        assert improve(marker) is marker
        assert len(improve) == 1

    def test_avoids_runaway_iteration(self):
        improve = Improve(lambda guess: False, lambda guess: guess)
        improve.set_maximum_iterations(10)
        with pytest.raises(IterationLimitExceeded) as info:
            improve(1)
        assert info.value.ceiling == 10
        assert "10" in str(info.value)
        assert improve.get_trajectory() == (1,) * 11
        assert info.value.trajectory == (1,) * 11

    def test_limit_counts_update_calls(self):
        calls = []

        def update(guess):
            calls.append(guess)
            return guess + 1

        improve = Improve(lambda guess: False, update, max_iterations=3)
        with pytest.raises(IterationLimitExceeded):
            improve(0)
        assert len(calls) == 3
        assert improve.get_trajectory() == (0, 1, 2, 3)

    def test_limit_is_also_a_runtime_error(self):
        improve = Improve(lambda guess: False, increment, max_iterations=1)
        with pytest.raises(RuntimeError):
            improve(0)

    def test_acceptance_on_last_allowed_update_still_raises(self):
        # The ceiling is checked right after the update, before deciding
        improve = Improve(at_least_four, increment, max_iterations=3)
        with pytest.raises(IterationLimitExceeded):
            improve(1)
        assert improve.get_trajectory() == (1, 2, 3, 4)

    def test_acceptance_before_limit(self):
        improve = Improve(at_least_four, increment, max_iterations=4)
        assert improve(1) == 4

    def test_golden_ratio(self):
        golden = Improve(
            lambda g: abs(g * g - (g + 1)) < 1e-5,
            lambda g: 1 / g + 1,
        )
        phi = golden(1)
        assert abs(phi - (1 + math.sqrt(5)) / 2) < 1e-4
        assert golden.get_trajectory()[:3] == (1, 2.0, 1.5)

    def test_newton_cycle_exhausts(self):
        f = lambda x: x ** 3 - 2 * x + 2
        df = lambda x: 3 * x ** 2 - 2
        newton = Improve(lambda x: abs(f(x)) < 1e-9, lambda x: x - f(x) / df(x))
        newton.set_maximum_iterations(6)
        with pytest.raises(IterationLimitExceeded):
            newton(0)
        assert newton.get_trajectory() == (0, 1, 0, 1, 0, 1, 0)


# ---------- Iteration Count Tests ----------

class TestIterationCount:
    def test_update_receives_completed_update_count(self):
        seen = []

        def update(guess, iterations):
            seen.append(iterations)
            return guess + 1

        Improve(at_least_four, update)(1)
        assert seen == [0, 1, 2]

    def test_trajectory_follows_update(self):
        update = lambda guess, i: guess * 2 + i
        improve = Improve(lambda guess: guess > 100, update)
        improve(1)
        trajectory = improve.get_trajectory()
        for i in range(len(trajectory) - 1):
            assert trajectory[i + 1] == update(trajectory[i], i)

    def test_count_restarts_per_invocation(self):
        seen = []

        def update(guess, iterations):
            seen.append(iterations)
            return guess + 1

        improve = Improve(at_least_four, update)
        improve(2)
        improve(2)
        assert seen == [0, 1, 0, 1]

    def test_var_positional_update_receives_count(self):
        seen = []

        def update(*args):
            seen.append(args)
            return args[0] + 1

        Improve(at_least_four, update)(3)
        assert seen == [(3, 0)]

    def test_single_argument_builtin(self):
        improve = Improve(lambda guess: guess == 0, abs)
        assert improve(-0) == 0
        improve = Improve(lambda guess: guess >= 0, abs)
        assert improve(-5) == 5

    def test_numpy_ufunc_gets_guess_only(self):
        improve = Improve(lambda g: g < 1.5, np.sqrt, max_iterations=10)
        assert improve(16.0) == pytest.approx(math.sqrt(2))
        assert improve.get_trajectory()[:3] == (16.0, 4.0, 2.0)

    def test_round_gets_guess_only(self):
        improve = Improve(lambda g: isinstance(g, int), round, max_iterations=5)
        assert improve(2.5) == 2
        assert improve.get_trajectory() == (2.5, 2)

    def test_defaulted_second_parameter_left_alone(self):
        def damped(x, damping=0.5):
            return x * damping

        improve = Improve(lambda g: g < 1, damped)
        assert improve(8.0) == 0.5
        assert improve.get_trajectory() == (8.0, 4.0, 2.0, 1.0, 0.5)

    def test_pass_iteration_forces_count(self):
        seen = []

        def update(guess, iterations=None):
            seen.append(iterations)
            return guess + 1

        Improve(at_least_four, update, pass_iteration=True)(1)
        assert seen == [0, 1, 2]

    def test_pass_iteration_suppresses_count(self):
        seen = []

        def update(guess, *rest):
            seen.append(rest)
            return guess + 1

        Improve(at_least_four, update, pass_iteration=False)(2)
        assert seen == [(), ()]

    def test_ceiling_applies_per_invocation(self):
        improve = Improve(at_least_four, increment, max_iterations=3)
        assert improve(2) == 4
        assert improve(2) == 4
        assert improve.get_trajectory() == (2, 3, 4, 2, 3, 4)


# ---------- Trajectory Tests ----------

class TestTrajectory:
    def test_trajectory_accumulates_across_invocations(self):
        improve = Improve(at_least_four, increment)
        improve(1)
        improve(2)
        assert improve.get_trajectory() == (1, 2, 3, 4, 2, 3, 4)

    def test_snapshot_is_not_mutated_by_later_runs(self):
        improve = Improve(at_least_four, increment)
        improve(3)
        snapshot = improve.get_trajectory()
        improve(1)
        assert snapshot == (3, 4)
        assert improve.trajectory == (3, 4, 1, 2, 3, 4)

    def test_snapshot_is_immutable(self):
        improve = Improve(at_least_four, increment)
        improve(3)
        with pytest.raises(TypeError):
            improve.get_trajectory()[0] = 99

    def test_new_engine_starts_clean(self):
        first = Improve(at_least_four, increment)
        first(1)
        second = Improve(at_least_four, increment)
        assert second.get_trajectory() == ()

    def test_trajectory_array(self):
        improve = Improve(at_least_four, increment)
        improve(1)
        array = improve.trajectory_array(dtype=float)
        assert isinstance(array, np.ndarray)
        np.testing.assert_array_equal(array, [1.0, 2.0, 3.0, 4.0])

    def test_trajectory_array_of_vectors(self):
        target = np.array([1.0, -2.0])
        improve = Improve(
            close_to(target, atol=1e-6),
            lambda g: g + (target - g) / 2,
        )
        result = improve(np.zeros(2))
        assert np.allclose(result, target, atol=1e-6)
        assert improve.trajectory_array().shape == (len(improve), 2)


# ---------- Ceiling Configuration Tests ----------

class TestMaximumIterations:
    def test_default_is_unbounded(self):
        improve = Improve(at_least_four, increment)
        assert improve.get_maximum_iterations() is None
        assert improve(-1000) == 4

    @pytest.mark.parametrize("value, expected", [
        (10, 10),
        ("10", 10),
        (" 7 ", 7),
        (2.7, 2),
        ("3.9", 3),
        (np.int64(5), 5),
        (Decimal("5"), 5),
        (Fraction(7, 2), 3),
    ])
    def test_numeric_coercion(self, value, expected):
        improve = Improve(at_least_four, increment)
        improve.set_maximum_iterations(value)
        assert improve.get_maximum_iterations() == expected

    @pytest.mark.parametrize("value", [
        0, -1, -0.5, 0.5, "0", "abc", "", True, False,
        float("nan"), float("inf"), [], {}, object(),
        "1_000", "1_0.5", Decimal("NaN"), Decimal("Infinity"), complex(3, 0),
    ])
    def test_invalid_ceiling_rejected(self, value):
        improve = Improve(at_least_four, increment)
        improve.set_maximum_iterations(5)
        with pytest.raises(ConfigurationError):
            improve.set_maximum_iterations(value)
        assert improve.get_maximum_iterations() == 5

    def test_configuration_error_is_value_error(self):
        improve = Improve(at_least_four, increment)
        with pytest.raises(ValueError):
            improve.set_maximum_iterations(0)

    def test_constructor_validates(self):
        with pytest.raises(ConfigurationError):
            Improve(at_least_four, increment, max_iterations=0)

    def test_none_removes_bound(self):
        improve = Improve(lambda guess: guess >= 20, increment)
        improve.set_maximum_iterations(5)
        with pytest.raises(IterationLimitExceeded):
            improve(0)
        improve.set_maximum_iterations(None)
        assert improve(0) == 20

    def test_property_setter(self):
        improve = Improve(at_least_four, increment)
        improve.max_iterations = "4"
        assert improve.max_iterations == 4
        with pytest.raises(ConfigurationError):
            improve.max_iterations = -4
        assert improve.max_iterations == 4


# ---------- Failure Propagation Tests ----------

class TestFailurePropagation:
    def test_update_failure_propagates_unmodified(self):
        error = ValueError("math domain error")

        def update(guess):
            raise error

        improve = Improve(lambda guess: False, update, max_iterations=10)
        with pytest.raises(ValueError) as info:
            improve(1)
        assert info.value is error
        assert improve.get_trajectory() == (1,)

    def test_decide_failure_propagates(self):
        def decide(guess):
            if guess == 3:
                raise KeyError(guess)
            return False

        improve = Improve(decide, increment)
        with pytest.raises(KeyError):
            improve(1)
        assert improve.get_trajectory() == (1, 2, 3)

    def test_non_callable_fails_lazily(self):
        improve = Improve(None, increment)
        with pytest.raises(TypeError):
            improve(1)

    def test_last_run_cleared_on_escape(self):
        def update(guess):
            raise ArithmeticError()

        improve = Improve(lambda guess: guess > 0, update)
        improve(1)
        assert improve.last_run is not None
        with pytest.raises(ArithmeticError):
            improve(0)
        assert improve.last_run is None


# ---------- Run Record Tests ----------

class TestLastRun:
    def test_none_before_invocation(self):
        assert Improve(at_least_four, increment).last_run is None

    def test_accepted_run(self):
        improve = Improve(at_least_four, increment)
        improve(0)
        improve(2)
        run = improve.last_run
        assert run.status is ImproveStatus.ACCEPTED
        assert run.iterations == 2
        assert run.guesses == (2, 3, 4)
        assert run.result == 4
        assert run.wall_time_seconds >= 0

    def test_exhausted_run(self):
        improve = Improve(lambda guess: False, increment, max_iterations=2)
        with pytest.raises(IterationLimitExceeded):
            improve(0)
        run = improve.last_run
        assert run.status is ImproveStatus.EXHAUSTED
        assert run.iterations == 2
        assert run.guesses == (0, 1, 2)

    def test_exhaustion_logged(self, caplog):
        improve = Improve(lambda guess: False, increment, max_iterations=2)
        with caplog.at_level(logging.WARNING, logger="fox.iteration.improve"):
            with pytest.raises(IterationLimitExceeded):
                improve(0)
        assert "iteration limit of 2" in caplog.text.lower()


# ---------- Helper Tests ----------

class TestHelpers:
    def test_close_to_scalar(self):
        decide = close_to(2.0, rtol=0, atol=1e-9)
        assert decide(2.0)
        assert decide(2.0 + 1e-12)
        assert not decide(2.1)

    def test_newton_square_root(self):
        close = close_to(2.0, rtol=0, atol=1e-12)
        sqrt2 = Improve(lambda g: close(g * g), lambda g: (g + 2 / g) / 2)
        assert abs(sqrt2(1.0) - math.sqrt(2)) < 1e-12

    def test_refine(self):
        assert refine(at_least_four, increment, 1) == 4

    def test_refine_with_limit(self):
        with pytest.raises(IterationLimitExceeded):
            refine(lambda guess: False, increment, 0, max_iterations=3)

    def test_repr(self):
        improve = Improve(at_least_four, increment, max_iterations=3)
        assert "max_iterations=3" in repr(improve)


# ---------- Wrapped Update Tests ----------

class TestWrappedUpdate:
    def test_wrapper_judged_by_wrapped_signature(self):
        def update(guess):
            return guess + 1

        @functools.wraps(update)
        def wrapper(*args):
            return update(*args)

        assert Improve(at_least_four, wrapper)(1) == 4


# ---------- Limit Error Tests ----------

class TestIterationLimitExceeded:
    def test_pickle_keeps_fields(self):
        improve = Improve(lambda guess: False, increment, max_iterations=2)
        with pytest.raises(IterationLimitExceeded) as info:
            improve(0)
        restored = pickle.loads(pickle.dumps(info.value))
        assert restored.ceiling == 2
        assert restored.trajectory == (0, 1, 2)
        assert str(restored) == "Reached the iteration limit of 2"
