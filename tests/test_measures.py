"""
Tests for the performance measures
"""

import numpy as np
import pytest
from survbench import Survival, make_synthetic_task
from survbench.evaluation import (
    HarrellC,
    UnoC,
    GrafScore,
    BrierScore,
    get_measure,
    get_measures,
    list_measures
)
from survbench.evaluation.measures import brier_scores, censoring_survival
from survbench.learners import KaplanMeierLearner, CoxPHLearner


@pytest.fixture
def uncensored():
    np.random.seed(42)
    time = np.random.exponential(scale=2.0, size=60)
    return Survival(time, np.ones(60))


def test_measure_registry():
    """Test measure lookup and properties"""
    assert list_measures() == sorted(["surv.cindex", "surv.uno_c", "surv.graf", "surv.brier"])
    assert isinstance(get_measure("surv.cindex"), HarrellC)
    assert get_measure("surv.graf", p_max=0.5).p_max == 0.5

    graf = GrafScore()
    assert get_measure(graf) is graf
    assert graf.minimize and graf.worst == 1.0
    assert not HarrellC().minimize and HarrellC().worst == 0.0

    default = get_measures(None)
    assert len(default) == 1 and isinstance(default[0], HarrellC)
    assert [m.key for m in get_measures(["surv.cindex", "surv.graf"])] == \
        ["surv.cindex", "surv.graf"]
    assert [m.key for m in get_measures("surv.brier")] == ["surv.brier"]

    with pytest.raises(KeyError):
        get_measure("surv.auc")


def test_harrell_c():
    """Perfect and reversed rankings"""
    y = Survival(np.array([1.0, 2.0, 3.0, 4.0]), np.array([1, 1, 1, 1]))
    assert HarrellC.from_risk(y, np.array([4.0, 3.0, 2.0, 1.0])) == pytest.approx(1.0)
    assert HarrellC.from_risk(y, np.array([1.0, 2.0, 3.0, 4.0])) == pytest.approx(0.0)
    assert HarrellC.from_risk(y, np.zeros(4)) == pytest.approx(0.5)


def test_harrell_c_without_comparable_pairs():
    """All-censored test data gives an undefined index"""
    y = Survival(np.array([1.0, 2.0, 3.0]), np.zeros(3))
    with pytest.warns(UserWarning):
        score = HarrellC.from_risk(y, np.array([1.0, 2.0, 3.0]))
    assert np.isnan(score)


def test_uno_c_matches_harrell_without_censoring(uncensored):
    """Without censoring all weights are one"""
    risk = np.random.randn(len(uncensored))
    uno = UnoC().from_risk(uncensored, risk)
    harrell = HarrellC.from_risk(uncensored, risk)
    assert uno == pytest.approx(harrell)

    assert UnoC().from_risk(uncensored, -uncensored.time) == pytest.approx(1.0)


def test_uno_c_cutoff():
    """Pairs after the cutoff are ignored"""
    y = Survival(np.array([1.0, 2.0, 3.0, 4.0]), np.array([1, 1, 1, 1]))
    # correct order for the first pair only
    risk = np.array([4.0, 1.0, 2.0, 3.0])
    assert UnoC(cutoff=1.5).from_risk(y, risk) == pytest.approx(1.0)
    assert UnoC().from_risk(y, risk) < 1.0


def test_uno_c_censoring_weights():
    """Pairs are weighted by the training censoring distribution"""
    # censored at 2 and 4: G = 1 before 2, 3/4 on [2, 4), 3/8 from 4
    y_train = Survival(np.array([1.0, 2.0, 3.0, 4.0, 5.0]), np.array([1, 0, 1, 0, 1]))
    y_test = Survival(np.array([1.0, 3.0, 5.0, 6.0]), np.array([1, 1, 1, 0]))
    risk = np.array([3.0, 1.0, 2.0, 0.0])

    # the event at 1 has weight 1 and three concordant pairs; the event at 3
    # has weight (4/3)^2 with one of two pairs concordant; 5 is past the cutoff
    w = (4.0 / 3.0) ** 2
    expected = (3 + w) / (3 + 2 * w)
    assert UnoC().from_risk(y_test, risk, y_train) == pytest.approx(expected)

    # censoring estimated on the test data alone leaves all weights at one
    assert UnoC().from_risk(y_test, risk) == pytest.approx(5 / 6)


class ConstantLearner:
    """Predicts fixed survival probabilities and records the requested times"""

    def __init__(self, surv):
        self.surv = np.asarray(surv, dtype=float)

    def predict_survival(self, X, times):
        self.times_ = np.asarray(times)
        return np.tile(self.surv[:, None], (1, len(times)))


def test_graf_default_grid():
    """Unique positive test times up to the 80% quantile"""
    y = Survival(np.array([0.0, 1.0, 2.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]), np.ones(10))
    # 80% quantile of the times is 6.2
    np.testing.assert_allclose(GrafScore()._grid(y), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    np.testing.assert_allclose(GrafScore(p_max=0.5)._grid(y), [1.0, 2.0, 3.0])
    np.testing.assert_allclose(GrafScore(times=[3.0, 1.0])._grid(y), [1.0, 3.0])

    learner = ConstantLearner(np.full(10, 0.5))
    assert GrafScore().score(y, learner, np.zeros((10, 1))) == pytest.approx(0.25)
    np.testing.assert_allclose(learner.times_, [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])


def test_brier_score_censoring_weights():
    """Survivors past a censoring time are up-weighted by 1 / G(t)"""
    y = Survival(np.array([1.0, 2.0, 3.0, 4.0]), np.array([1, 0, 1, 1]))
    learner = ConstantLearner([0.2, 0.6, 0.7, 0.9])
    # G(2.5) = 2/3; the sample censored at 2 contributes nothing
    expected = (0.2 ** 2 + 1.5 * 0.3 ** 2 + 1.5 * 0.1 ** 2) / 4
    score = BrierScore(time=2.5).score(y, learner, np.zeros((4, 1)))
    assert score == pytest.approx(expected)


def test_brier_scores_constant_prediction(uncensored):
    """Predicting one half everywhere scores one quarter without censoring"""
    times = np.quantile(uncensored.time, [0.2, 0.5, 0.8])
    surv = np.full((len(uncensored), 3), 0.5)
    G = censoring_survival(uncensored)
    np.testing.assert_allclose(brier_scores(uncensored, surv, times, G), 0.25)
    assert GrafScore().from_survival(uncensored, surv, times) == pytest.approx(0.25)


def test_graf_score_perfect_prediction(uncensored):
    """Step curves at the true event times score zero"""
    times = np.sort(uncensored.time)[:30]
    surv = (uncensored.time[:, None] > times[None, :]).astype(float)
    assert GrafScore().from_survival(uncensored, surv, times) == pytest.approx(0.0)


def test_measures_score_learners():
    """Scores of fitted learners lie in the measures' ranges"""
    task = make_synthetic_task(n_samples=200, random_state=42)
    X, y = task.X.to_numpy(), task.y
    train, test = np.arange(140), np.arange(140, 200)

    km = KaplanMeierLearner().fit(X[train], y[train])
    cox = CoxPHLearner().fit(X[train], y[train])

    for measure in (HarrellC(), UnoC(), GrafScore(), BrierScore()):
        for learner in (km, cox):
            score = measure.score(y[test], learner, X[test], y_train=y[train])
            assert measure.range[0] <= score <= measure.range[1]

    # Covariates help
    assert HarrellC().score(y[test], km, X[test]) == pytest.approx(0.5)
    assert HarrellC().score(y[test], cox, X[test]) > 0.5
    graf_km = GrafScore().score(y[test], km, X[test], y_train=y[train])
    graf_cox = GrafScore().score(y[test], cox, X[test], y_train=y[train])
    assert graf_cox < graf_km + 0.05
