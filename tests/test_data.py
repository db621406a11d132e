"""
Tests for survival targets, tasks and bundled datasets
"""

import numpy as np
import pandas as pd
import pytest
from survbench.data import (
    Survival,
    SurvivalTask,
    DataValidator,
    load_task,
    list_tasks,
    make_synthetic_task
)


def test_survival_data_validation():
    """Test validation of survival data"""
    time = np.array([1, 2, 3])
    event = np.array([1, 0, 1])
    y = Survival(time, event)
    assert np.array_equal(y.time, time)
    assert np.array_equal(y.event, event)
    assert len(y) == 3

    # Invalid data - different lengths
    with pytest.raises(ValueError):
        Survival(np.array([1, 2]), np.array([1, 0, 1]))

    # Invalid data - negative times
    with pytest.raises(ValueError):
        Survival(np.array([-1, 2, 3]), np.array([1, 0, 1]))

    # Invalid data - non-finite times
    with pytest.raises(ValueError):
        Survival(np.array([1, np.nan, 3]), np.array([1, 0, 1]))

    # Invalid data - invalid event indicators
    with pytest.raises(ValueError):
        Survival(np.array([1, 2, 3]), np.array([1, 2, 1]))


def test_survival_indexing_and_event_times():
    """Test subsetting and unique event times"""
    y = Survival(np.array([5.0, 1.0, 3.0, 1.0, 2.0]), np.array([1, 1, 0, 1, 0]))
    np.testing.assert_array_equal(y.event_times, [1.0, 5.0])

    sub = y[np.array([0, 2])]
    assert isinstance(sub, Survival)
    np.testing.assert_array_equal(sub.time, [5.0, 3.0])
    np.testing.assert_array_equal(sub.event, [1, 0])

    frame = y.to_frame()
    assert list(frame.columns) == ['time', 'event']
    assert len(frame) == 5


def test_data_validator_features():
    """Test feature matrix validation"""
    validator = DataValidator()
    assert validator.validate_features(np.zeros((3, 2)), 3)

    with pytest.raises(ValueError):
        validator.validate_features(np.zeros(3), 3)
    with pytest.raises(ValueError):
        validator.validate_features(np.zeros((3, 2)), 4)
    with pytest.raises(ValueError):
        validator.validate_features(np.zeros((0, 2)), 0)


def test_survival_task_from_dataframe():
    """Test building a task from a table"""
    df = pd.DataFrame({
        'age': [50, 60, 70, 80],
        'sex': ['m', 'f', 'f', 'm'],
        'days': [10.0, 20.0, 5.0, 40.0],
        'dead': [1, 0, 1, 0]
    })
    task = SurvivalTask("toy", df, time='days', event='dead')

    assert task.id == "toy"
    assert task.n_obs == 4
    assert task.n_features == 2
    assert task.feature_names == ['age', 'sex']
    assert list(task.X.columns) == ['age', 'sex']
    np.testing.assert_array_equal(task.y.time, [10.0, 20.0, 5.0, 40.0])
    assert task.censoring_rate == pytest.approx(0.5)


def test_survival_task_recodes_one_two_events():
    """Status columns coded 1=censored, 2=event are recoded"""
    df = pd.DataFrame({'x': [1.0, 2.0, 3.0], 'time': [1.0, 2.0, 3.0], 'status': [2, 1, 2]})
    task = SurvivalTask("lung-like", df, event='status')
    np.testing.assert_array_equal(task.y.event, [1, 0, 1])

    df['status'] = [0, 3, 1]
    with pytest.raises(ValueError):
        SurvivalTask("bad", df, event='status')


def test_survival_task_invalid_columns():
    """Test errors for missing or overlapping columns"""
    df = pd.DataFrame({'x': [1.0, 2.0], 'time': [1.0, 2.0], 'event': [1, 0]})

    with pytest.raises(ValueError):
        SurvivalTask("t", df, time='missing')
    with pytest.raises(ValueError):
        SurvivalTask("t", df, features=['x', 'other'])
    with pytest.raises(ValueError):
        SurvivalTask("t", df, features=['x', 'time'])
    with pytest.raises(ValueError):
        SurvivalTask("t", df.to_numpy())


def test_survival_task_from_arrays_and_filter():
    """Test building a task from arrays and subsetting it"""
    np.random.seed(42)
    X = np.random.randn(10, 3)
    y = Survival(np.random.exponential(size=10), np.random.binomial(1, 0.7, size=10))

    task = SurvivalTask.from_arrays(X, y, id="arrays")
    assert task.feature_names == ['x0', 'x1', 'x2']
    np.testing.assert_allclose(task.X.to_numpy(), X)
    np.testing.assert_allclose(task.y.time, y.time)

    sub = task.filter([0, 3, 5])
    assert sub.id == "arrays"
    assert sub.n_obs == 3
    np.testing.assert_allclose(sub.X.to_numpy(), X[[0, 3, 5]])
    np.testing.assert_array_equal(sub.y.event, y.event[[0, 3, 5]])

    with pytest.raises(ValueError):
        SurvivalTask.from_arrays(X[:5], y)


def test_make_synthetic_task():
    """Test simulated proportional hazards data"""
    task = make_synthetic_task(n_samples=150, n_features=4, n_categorical=2, random_state=42)
    assert task.n_obs == 150
    assert task.n_features == 6
    assert task.feature_names[-2:] == ['cat0', 'cat1']
    assert set(task.X['cat0']) <= {'a', 'b', 'c'}
    assert 0.0 < task.censoring_rate < 1.0

    # Same seed gives the same data
    again = make_synthetic_task(n_samples=150, n_features=4, n_categorical=2, random_state=42)
    pd.testing.assert_frame_equal(task.data, again.data)

    uncensored = make_synthetic_task(n_samples=50, censoring_scale=None, random_state=0)
    assert uncensored.censoring_rate == 0.0

    with pytest.raises(ValueError):
        make_synthetic_task(n_features=2, n_informative=3)


def test_load_task():
    """Test loading bundled datasets"""
    assert 'rossi' in list_tasks()
    assert 'lung' in list_tasks()

    rossi = load_task('rossi')
    assert rossi.id == 'rossi'
    assert rossi.n_obs == 432
    assert rossi.n_features == 7

    lung = load_task('lung')
    assert set(np.unique(lung.y.event)) <= {0, 1}
    assert 'inst' not in lung.feature_names
    # lung has missing feature values, which a pipeline must impute
    assert lung.X.isna().any().any()

    with pytest.raises(KeyError):
        load_task('unknown')
