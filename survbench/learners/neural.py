"""
Neural-network survival learners trained with PyTorch.

Five model families are provided, all sharing one training loop
(:class:`BaseNeuralLearner`):

* :class:`DeepSurvLearner` - Cox proportional hazards with an MLP risk function
* :class:`CoxTimeLearner` - relative risk that may vary with time
* :class:`DeepHitLearner` - discrete-time distribution with a ranking loss
* :class:`LogisticHazardLearner` - discrete-time hazards
* :class:`PCHazardLearner` - piecewise-constant continuous-time hazards
"""
import logging
import warnings
from abc import abstractmethod
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import torch
from scipy.special import expit
from torch.utils.data import DataLoader, TensorDataset

from .base import BaseSurvivalLearner
from .networks import SurvivalMLP
from . import losses
from ..data import Survival
from ..utils import HazardEstimator, DurationDiscretizer

logger = logging.getLogger(__name__)

_OPTIMIZERS = {
    'adam': torch.optim.Adam,
    'adamw': torch.optim.AdamW,
    'sgd': torch.optim.SGD,
    'rmsprop': torch.optim.RMSprop,
}


class BaseNeuralLearner(BaseSurvivalLearner):
    """
    Shared training loop for the neural survival learners.

    Parameters
    ----------
    num_nodes : sequence of int, default=(32, 32)
        Width of each hidden layer
    dropout : float, default=0.1
        Dropout probability after each hidden layer
    weight_decay : float, default=0.0
        L2 penalty passed to the optimizer
    learning_rate : float, default=0.01
        Optimizer step size
    batch_norm : bool, default=True
        Whether to batch-normalize hidden layers
    activation : str, default='relu'
        Hidden activation
    optimizer : str, default='adam'
        One of 'adam', 'adamw', 'sgd', 'rmsprop'
    epochs : int, default=10
        Maximum number of passes over the training data
    batch_size : int, default=256
        Mini-batch size
    early_stopping : bool, default=False
        Hold out ``frac`` of the training data and stop once the validation
        loss has not improved for ``patience`` epochs
    frac : float, default=0.2
        Validation fraction used for early stopping
    patience : int, default=5
        Epochs without improvement before stopping
    random_state : int, optional
        Seed for weight initialisation, shuffling and the validation split
    device : str, default='cpu'
        Torch device; 'auto' selects CUDA when available
    """

    def __init__(self,
                 num_nodes: Sequence[int] = (32, 32),
                 dropout: float = 0.1,
                 weight_decay: float = 0.0,
                 learning_rate: float = 0.01,
                 batch_norm: bool = True,
                 activation: str = 'relu',
                 optimizer: str = 'adam',
                 epochs: int = 10,
                 batch_size: int = 256,
                 early_stopping: bool = False,
                 frac: float = 0.2,
                 patience: int = 5,
                 random_state: Optional[int] = None,
                 device: str = 'cpu'):
        self.num_nodes = num_nodes
        self.dropout = dropout
        self.weight_decay = weight_decay
        self.learning_rate = learning_rate
        self.batch_norm = batch_norm
        self.activation = activation
        self.optimizer = optimizer
        self.epochs = epochs
        self.batch_size = batch_size
        self.early_stopping = early_stopping
        self.frac = frac
        self.patience = patience
        self.random_state = random_state
        self.device = device

    # hooks implemented by each model family

    @abstractmethod
    def _fit_targets(self, X: np.ndarray, y: Survival) -> Tuple[np.ndarray, ...]:
        """Per-sample training targets, in the order ``_batch_loss`` expects"""

    @abstractmethod
    def _output_dim(self) -> int:
        """Number of network outputs"""

    @abstractmethod
    def _batch_loss(self, xb: torch.Tensor, *targets: torch.Tensor) -> torch.Tensor:
        """Mean loss of one mini-batch"""

    def _input_dim(self, n_features: int) -> int:
        return n_features

    def _output_bias(self) -> bool:
        return True

    def _after_fit(self, X: np.ndarray, y: Survival) -> None:
        """Estimate anything needed for prediction once the net is trained"""

    def _check_params(self) -> None:
        if self.epochs < 1:
            raise ValueError("epochs must be at least 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    # training

    def _snapshot(self) -> Optional[dict]:
        """Copy of the network state, or None if any weight is not finite"""
        state = self.net_.state_dict()
        for value in state.values():
            if torch.is_floating_point(value) and not torch.isfinite(value).all():
                return None
        return {k: v.detach().clone() for k, v in state.items()}

    def _torch_device(self) -> torch.device:
        if self.device == 'auto':
            return torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        return torch.device(self.device)

    def _make_optimizer(self, params) -> torch.optim.Optimizer:
        if self.optimizer not in _OPTIMIZERS:
            raise ValueError(f"Unknown optimizer: {self.optimizer}. "
                             f"Choose from {sorted(_OPTIMIZERS)}")
        return _OPTIMIZERS[self.optimizer](params, lr=self.learning_rate,
                                           weight_decay=self.weight_decay)

    def _split(self, n: int, rng: np.random.RandomState) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        idx = rng.permutation(n)
        if not self.early_stopping:
            return idx, None
        if not 0.0 < self.frac < 1.0:
            raise ValueError("frac must be in (0, 1) when early_stopping is enabled")
        n_val = int(round(n * self.frac))
        if n_val < 2 or n - n_val < 2:
            warnings.warn("Too few samples for an early-stopping split; training on all data")
            return idx, None
        return idx[n_val:], idx[:n_val]

    def _tensors(self, arrays: Sequence[np.ndarray], rows: np.ndarray) -> Tuple[torch.Tensor, ...]:
        out = []
        for a in arrays:
            dtype = torch.long if np.issubdtype(a.dtype, np.integer) else torch.float32
            out.append(torch.as_tensor(a[rows], dtype=dtype, device=self.device_))
        return tuple(out)

    def fit(self, X: Union[np.ndarray, pd.DataFrame], y: Survival) -> 'BaseNeuralLearner':
        """
        Fit the network

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training data, numeric and without missing values
        y : Survival
            Target survival data

        Returns
        -------
        self : BaseNeuralLearner
            Fitted learner
        """
        X, y = self._validate_data(X, y)
        self._check_params()

        rng = np.random.RandomState(self.random_state)
        if self.random_state is not None:
            torch.manual_seed(self.random_state)
        self._rng = rng
        self.device_ = self._torch_device()
        self.n_features_in_ = X.shape[1]
        self.event_times_ = y.event_times

        targets = self._fit_targets(X, y)
        train_rows, val_rows = self._split(len(y), rng)

        self.net_ = SurvivalMLP(
            input_dim=self._input_dim(X.shape[1]),
            num_nodes=list(self.num_nodes),
            output_dim=self._output_dim(),
            batch_norm=self.batch_norm,
            dropout=self.dropout,
            activation=self.activation,
            output_bias=self._output_bias()
        ).to(self.device_)
        optimizer = self._make_optimizer(self.net_.parameters())

        arrays = (X,) + tuple(targets)
        train_set = TensorDataset(*self._tensors(arrays, train_rows))
        # a trailing batch of one sample breaks batch normalization
        drop_last = self.batch_norm and len(train_rows) % self.batch_size == 1 \
            and len(train_rows) > self.batch_size
        generator = torch.Generator()
        if self.random_state is not None:
            generator.manual_seed(self.random_state)
        loader = DataLoader(train_set, batch_size=self.batch_size, shuffle=True,
                            drop_last=drop_last, generator=generator)
        val_tensors = self._tensors(arrays, val_rows) if val_rows is not None else None

        self.history_ = {'train_loss': [], 'val_loss': []}
        best_loss, best_state, bad_epochs = np.inf, None, 0
        last_state = None

        for epoch in range(self.epochs):
            self.net_.train()
            total, count = 0.0, 0
            for batch in loader:
                optimizer.zero_grad()
                loss = self._batch_loss(*batch)
                loss.backward()
                optimizer.step()
                total += loss.item() * len(batch[0])
                count += len(batch[0])
            train_loss = total / max(count, 1)
            self.history_['train_loss'].append(train_loss)

            if not np.isfinite(train_loss):
                warnings.warn(f"{self.key}: training loss became {train_loss} at epoch "
                              f"{epoch + 1}; stopping early")
                break
            last_state = self._snapshot() or last_state

            if val_tensors is None:
                logger.debug("%s epoch %d: train loss %.4f", self.key, epoch + 1, train_loss)
                continue

            self.net_.eval()
            with torch.no_grad():
                val_loss = self._batch_loss(*val_tensors).item()
            self.history_['val_loss'].append(val_loss)
            logger.debug("%s epoch %d: train loss %.4f, val loss %.4f",
                         self.key, epoch + 1, train_loss, val_loss)

            if val_loss < best_loss:
                best_loss, bad_epochs = val_loss, 0
                best_state = {k: v.detach().clone() for k, v in self.net_.state_dict().items()}
            else:
                bad_epochs += 1
                if bad_epochs >= self.patience:
                    logger.debug("%s stopped early after epoch %d", self.key, epoch + 1)
                    break

        if best_state is None and self._snapshot() is None:
            # diverged: fall back to the last epoch that ended with finite weights
            if last_state is None:
                raise ValueError(f"{self.key}: training diverged before any epoch finished "
                                 f"with finite weights; lower the learning rate")
            best_state = last_state
        if best_state is not None:
            self.net_.load_state_dict(best_state)
        self.net_.eval()
        self.n_epochs_ = len(self.history_['train_loss'])

        self._after_fit(X, y)
        del self._rng
        self.is_fitted_ = True
        return self

    def _forward(self, X: np.ndarray) -> np.ndarray:
        self.net_.eval()
        with torch.no_grad():
            x = torch.as_tensor(X, dtype=torch.float32, device=self.device_)
            return self.net_(x).cpu().numpy()


class DeepSurvLearner(BaseNeuralLearner):
    """
    Cox proportional hazards model with a neural-network risk function.

    The network outputs the log relative risk ``g(x)``; the baseline
    cumulative hazard is estimated with Breslow's method on the training
    data, giving ``S(t | x) = exp(-H0(t) exp(g(x)))``.
    """

    key = "surv.deepsurv"

    def _fit_targets(self, X, y):
        return y.time.astype(np.float32), y.event.astype(np.float32)

    def _output_dim(self) -> int:
        return 1

    def _output_bias(self) -> bool:
        return False

    def _batch_loss(self, xb, time, event):
        return losses.cox_ph_loss(self.net_(xb), time, event)

    def _after_fit(self, X, y):
        log_h = np.clip(self._forward(X).ravel(), -50, 50)
        times, hazard = HazardEstimator.estimate_baseline_hazard(
            y.time, y.event, weights=np.exp(log_h), method="breslow")
        self.baseline_times_, self.baseline_cumulative_hazard_ = \
            HazardEstimator.estimate_cumulative_hazard(times, hazard)

    def predict_risk(self, X):
        X = self._check_features(X)
        return self._forward(X).ravel()

    def predict_survival(self, X, times):
        X = self._check_features(X)
        times = self._validate_times(times)
        h0 = HazardEstimator.step_function(self.baseline_times_,
                                           self.baseline_cumulative_hazard_, times)
        risk = np.exp(np.clip(self._forward(X).ravel(), -50, 50))
        return HazardEstimator.transform_hazard(np.outer(risk, h0))


class CoxTimeLearner(BaseNeuralLearner):
    """
    Non-proportional relative-risk model ``g(t, x)``.

    Time enters the network as an extra standardized input. Training uses a
    case-control likelihood: each event is compared with one control sampled
    from its risk set. The baseline hazard is a Breslow-type estimator
    evaluated with the time-specific risks.

    Parameters
    ----------
    max_baseline_samples : int, default=2000
        Risk sets are subsampled to at most this many training rows when
        estimating the baseline hazard
    """

    key = "surv.coxtime"

    def __init__(self,
                 num_nodes: Sequence[int] = (32, 32),
                 dropout: float = 0.1,
                 weight_decay: float = 0.0,
                 learning_rate: float = 0.01,
                 batch_norm: bool = True,
                 activation: str = 'relu',
                 optimizer: str = 'adam',
                 epochs: int = 10,
                 batch_size: int = 256,
                 early_stopping: bool = False,
                 frac: float = 0.2,
                 patience: int = 5,
                 random_state: Optional[int] = None,
                 device: str = 'cpu',
                 max_baseline_samples: int = 2000):
        super().__init__(num_nodes=num_nodes, dropout=dropout, weight_decay=weight_decay,
                         learning_rate=learning_rate, batch_norm=batch_norm,
                         activation=activation, optimizer=optimizer, epochs=epochs,
                         batch_size=batch_size, early_stopping=early_stopping, frac=frac,
                         patience=patience, random_state=random_state, device=device)
        self.max_baseline_samples = max_baseline_samples

    def _input_dim(self, n_features):
        return n_features + 1

    def _output_dim(self):
        return 1

    def _output_bias(self):
        return False

    def _scale_time(self, t: np.ndarray) -> np.ndarray:
        return (np.asarray(t, dtype=float) - self.time_mean_) / self.time_std_

    def _fit_targets(self, X, y):
        self.time_mean_ = float(np.mean(y.time))
        self.time_std_ = float(np.std(y.time)) or 1.0
        self._train_X = torch.as_tensor(X, dtype=torch.float32, device=self.device_)
        self._sorted_rows = np.argsort(y.time, kind="mergesort")
        self._sorted_time = y.time[self._sorted_rows]
        return (y.time.astype(np.float32), y.event.astype(np.float32),
                np.arange(len(y), dtype=np.int64))

    def _g(self, x: torch.Tensor, t_scaled: torch.Tensor) -> torch.Tensor:
        return self.net_(torch.cat([x, t_scaled.view(-1, 1)], dim=1)).view(-1)

    def _batch_loss(self, xb, time, event, rows):
        mask = event > 0
        if not torch.any(mask):
            return (self.net_(torch.cat([xb, time.view(-1, 1)], dim=1)) * 0.0).sum()
        t_case = time[mask].cpu().numpy()
        # controls are drawn from the full training risk set R(t) = {j: t_j >= t}
        start = np.searchsorted(self._sorted_time, t_case, side="left")
        n = len(self._sorted_time)
        draw = start + np.floor(self._control_rng().uniform(size=len(start)) * (n - start)).astype(int)
        control_rows = self._sorted_rows[np.minimum(draw, n - 1)]

        t_scaled = torch.as_tensor(self._scale_time(t_case), dtype=torch.float32,
                                   device=self.device_)
        controls = self._train_X[torch.as_tensor(control_rows, device=self.device_)]
        # one forward pass so batch norm never sees a single row
        g = self._g(torch.cat([xb[mask], controls]), torch.cat([t_scaled, t_scaled]))
        g_case, g_control = g[:len(t_case)], g[len(t_case):]
        return losses.cox_cc_loss(g_case, g_control)

    def _control_rng(self) -> np.random.RandomState:
        # validation losses after fit reuse a fixed generator
        return getattr(self, '_rng', None) or np.random.RandomState(0)

    def _g_at(self, X: torch.Tensor, t: float) -> np.ndarray:
        t_scaled = torch.full((X.shape[0],), float(self._scale_time(t)),
                              dtype=torch.float32, device=self.device_)
        with torch.no_grad():
            return self._g(X, t_scaled).cpu().numpy()

    def _after_fit(self, X, y):
        self.net_.eval()
        rows = np.arange(len(y))
        if len(rows) > self.max_baseline_samples:
            rows = np.sort(self._rng.choice(rows, self.max_baseline_samples, replace=False))
        scale = len(y) / len(rows)
        Xs = self._train_X[rows]
        ts = y.time[rows]

        event_times = y.event_times
        counts = np.array([np.sum((y.time == t) & (y.event == 1)) for t in event_times])
        increments = np.zeros(len(event_times))
        for k, t in enumerate(event_times):
            at_risk = ts >= t
            if not np.any(at_risk):
                continue
            g = np.clip(self._g_at(Xs[at_risk], t), -50, 50)
            increments[k] = counts[k] / (scale * np.exp(g).sum())

        self.baseline_times_ = event_times
        self.baseline_hazard_ = increments
        del self._train_X, self._sorted_rows, self._sorted_time

    def predict_cumulative_hazard(self, X, times):
        X = self._check_features(X)
        times = self._validate_times(times)
        x = torch.as_tensor(X, dtype=torch.float32, device=self.device_)
        increments = np.zeros((X.shape[0], len(self.baseline_times_)))
        for k, t in enumerate(self.baseline_times_):
            g = np.clip(self._g_at(x, t), -50, 50)
            increments[:, k] = np.exp(g) * self.baseline_hazard_[k]
        cumhaz = np.cumsum(increments, axis=1)
        return HazardEstimator.step_function(self.baseline_times_, cumhaz, times)

    def predict_survival(self, X, times):
        return HazardEstimator.transform_hazard(self.predict_cumulative_hazard(X, times))


class _DiscreteTimeLearner(BaseNeuralLearner):
    """Learners whose output is indexed by a grid of cut points."""

    def __init__(self,
                 num_nodes: Sequence[int] = (32, 32),
                 dropout: float = 0.1,
                 weight_decay: float = 0.0,
                 learning_rate: float = 0.01,
                 batch_norm: bool = True,
                 activation: str = 'relu',
                 optimizer: str = 'adam',
                 epochs: int = 10,
                 batch_size: int = 256,
                 early_stopping: bool = False,
                 frac: float = 0.2,
                 patience: int = 5,
                 random_state: Optional[int] = None,
                 device: str = 'cpu',
                 num_durations: int = 20,
                 cut_scheme: str = 'equidistant'):
        super().__init__(num_nodes=num_nodes, dropout=dropout, weight_decay=weight_decay,
                         learning_rate=learning_rate, batch_norm=batch_norm,
                         activation=activation, optimizer=optimizer, epochs=epochs,
                         batch_size=batch_size, early_stopping=early_stopping, frac=frac,
                         patience=patience, random_state=random_state, device=device)
        self.num_durations = num_durations
        self.cut_scheme = cut_scheme

    def _fit_targets(self, X, y):
        self.discretizer_ = DurationDiscretizer(self.num_durations, self.cut_scheme)
        self.discretizer_.fit(y.time, y.event)
        idx, event = self.discretizer_.transform(y.time, y.event)
        # the first cut is 0: without training events there, S(0) is pinned to 1
        self.event_at_origin_ = bool(np.any((idx == 0) & (event == 1)))
        return idx.astype(np.int64), event.astype(np.float32)

    def _output_dim(self):
        return self.discretizer_.n_cuts

    @property
    def cuts_(self) -> np.ndarray:
        return self.discretizer_.cuts_

    @abstractmethod
    def _grid_survival(self, X: np.ndarray) -> np.ndarray:
        """Survival at every cut point, shape (n_samples, n_cuts)"""

    def predict_survival(self, X, times):
        X = self._check_features(X)
        times = self._validate_times(times)
        surv = self._grid_survival(X)
        return HazardEstimator.step_function(self.cuts_, surv, times, initial=1.0)


class LogisticHazardLearner(_DiscreteTimeLearner):
    """
    Discrete-time hazard model (Nnet-survival).

    The network outputs one hazard logit per cut point and is trained with the
    Bernoulli likelihood of surviving each interval.
    """

    key = "surv.loghaz"

    def _batch_loss(self, xb, idx, event):
        return losses.nll_logistic_hazard(self.net_(xb), idx, event)

    def _grid_survival(self, X):
        hazard = expit(self._forward(X))
        if not self.event_at_origin_:
            hazard[:, 0] = 0.0
        return np.cumprod(1.0 - hazard, axis=1)


class DeepHitLearner(_DiscreteTimeLearner):
    """
    DeepHit for single-event data.

    The network parameterises a probability mass function over the cut points
    (plus the mass beyond the last one). The loss mixes the likelihood with a
    pairwise ranking term.

    Parameters
    ----------
    alpha : float, default=0.2
        Weight of the likelihood term; ``1 - alpha`` weights the ranking term
    sigma : float, default=0.1
        Scale of the ranking term
    """

    key = "surv.deephit"

    def __init__(self,
                 num_nodes: Sequence[int] = (32, 32),
                 dropout: float = 0.1,
                 weight_decay: float = 0.0,
                 learning_rate: float = 0.01,
                 batch_norm: bool = True,
                 activation: str = 'relu',
                 optimizer: str = 'adam',
                 epochs: int = 10,
                 batch_size: int = 256,
                 early_stopping: bool = False,
                 frac: float = 0.2,
                 patience: int = 5,
                 random_state: Optional[int] = None,
                 device: str = 'cpu',
                 num_durations: int = 20,
                 cut_scheme: str = 'equidistant',
                 alpha: float = 0.2,
                 sigma: float = 0.1):
        super().__init__(num_nodes=num_nodes, dropout=dropout, weight_decay=weight_decay,
                         learning_rate=learning_rate, batch_norm=batch_norm,
                         activation=activation, optimizer=optimizer, epochs=epochs,
                         batch_size=batch_size, early_stopping=early_stopping, frac=frac,
                         patience=patience, random_state=random_state, device=device,
                         num_durations=num_durations, cut_scheme=cut_scheme)
        self.alpha = alpha
        self.sigma = sigma

    def _check_params(self):
        super()._check_params()
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError("alpha must be in [0, 1]")

    def _batch_loss(self, xb, idx, event):
        return losses.deephit_loss(self.net_(xb), idx, event, alpha=self.alpha, sigma=self.sigma)

    def _grid_survival(self, X):
        phi = self._forward(X)
        phi = np.hstack([phi, np.zeros((phi.shape[0], 1))])
        phi = phi - phi.max(axis=1, keepdims=True)
        pmf = np.exp(phi)
        if not self.event_at_origin_:
            pmf[:, 0] = 0.0
        pmf /= pmf.sum(axis=1, keepdims=True)
        cdf = np.cumsum(pmf[:, :-1], axis=1)
        return np.clip(1.0 - cdf, 0.0, 1.0)


class PCHazardLearner(_DiscreteTimeLearner):
    """
    Piecewise-constant hazard model.

    The network outputs one log hazard per interval between cut points; the
    cumulative hazard is linear within each interval, so survival is a smooth
    function of time rather than a step function.
    """

    key = "surv.pchazard"

    def _fit_targets(self, X, y):
        self.discretizer_ = DurationDiscretizer(self.num_durations, self.cut_scheme)
        self.discretizer_.fit(y.time, y.event)
        idx, frac = self.discretizer_.interval_index(y.time)
        self._widths = torch.as_tensor(np.diff(self.discretizer_.cuts_), dtype=torch.float32,
                                       device=self.device_)
        return idx.astype(np.int64), y.event.astype(np.float32), frac.astype(np.float32)

    def _output_dim(self):
        return self.discretizer_.n_cuts - 1

    def _batch_loss(self, xb, idx, event, frac):
        return losses.nll_pc_hazard(self.net_(xb), idx, event, frac, self._widths)

    def _grid_cumulative_hazard(self, X: np.ndarray) -> np.ndarray:
        haz = np.exp(np.clip(self._forward(X), -50, 50)) * np.diff(self.cuts_)
        return np.hstack([np.zeros((X.shape[0], 1)), np.cumsum(haz, axis=1)])

    def _grid_survival(self, X):
        return np.exp(-self._grid_cumulative_hazard(X))

    def predict_survival(self, X, times):
        X = self._check_features(X)
        times = self._validate_times(times)
        cumhaz = self._grid_cumulative_hazard(X)
        # constant hazard within intervals: interpolate linearly, hold after the last cut
        out = np.empty((X.shape[0], len(times)))
        for i in range(X.shape[0]):
            out[i] = np.interp(times, self.cuts_, cumhaz[i])
        return np.exp(-out)
