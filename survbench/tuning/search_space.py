from dataclasses import dataclass
from itertools import product
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple

import numpy as np


ParamKind = Literal["float", "int", "categorical"]


@dataclass(frozen=True)
class ParamSpec:
    """
    One tunable hyper-parameter.

    Example:
      - ParamSpec("dropout", "float", 0.0, 1.0)
      - ParamSpec("learning_rate", "float", 1e-4, 1e-1, log=True)
      - ParamSpec("activation", "categorical", levels=("relu", "elu"))
    """

    name: str
    kind: ParamKind = "float"
    lower: float = 0.0
    upper: float = 1.0
    log: bool = False
    levels: Optional[Tuple[Any, ...]] = None

    def __post_init__(self) -> None:
        if self.kind not in ("float", "int", "categorical"):
            raise ValueError(f"Unknown kind {self.kind!r} for param {self.name!r}")
        if self.kind == "categorical":
            if not self.levels:
                raise ValueError(f"categorical param {self.name!r} requires non-empty levels")
            return
        if self.lower > self.upper:
            raise ValueError(f"lower > upper for param {self.name!r}")
        if self.log and self.lower <= 0:
            raise ValueError(f"log-scaled param {self.name!r} needs a positive lower bound")

    def sample(self, rng: np.random.RandomState) -> Any:
        if self.kind == "categorical":
            return self.levels[rng.randint(len(self.levels))]

        if self.log:
            x = float(np.exp(rng.uniform(np.log(self.lower), np.log(self.upper))))
        else:
            x = float(rng.uniform(self.lower, self.upper))

        if self.kind == "int":
            if not self.log:
                return int(rng.randint(int(np.ceil(self.lower)), int(np.floor(self.upper)) + 1))
            return int(np.clip(round(x), np.ceil(self.lower), np.floor(self.upper)))
        return x

    def grid_values(self, resolution: int) -> List[Any]:
        """Evenly spaced values (on the log scale if ``log``) across the bounds"""
        if self.kind == "categorical":
            return list(self.levels)
        if resolution < 1:
            raise ValueError("resolution must be at least 1")
        if self.log:
            values = np.exp(np.linspace(np.log(self.lower), np.log(self.upper), resolution))
        else:
            values = np.linspace(self.lower, self.upper, resolution)
        if self.kind == "int":
            return sorted(set(int(round(v)) for v in values))
        return [float(v) for v in values]

    def contains(self, value: Any) -> bool:
        if self.kind == "categorical":
            return value in self.levels
        return self.lower <= value <= self.upper


@dataclass(frozen=True)
class SearchSpace:
    """
    A set of hyper-parameter ranges plus an optional transform.

    ``trafo`` maps a raw point (one value per :class:`ParamSpec`) to the
    keyword arguments actually passed to the learner, so parameters of the
    space need not be parameters of the learner.
    """

    params: Tuple[ParamSpec, ...]
    trafo: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None

    def __post_init__(self) -> None:
        if not self.params:
            raise ValueError("SearchSpace must have at least one parameter.")
        names = [p.name for p in self.params]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate parameter names in search space: {names!r}")
        object.__setattr__(self, "params", tuple(self.params))

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.params]

    def __len__(self) -> int:
        return len(self.params)

    def sample(self, rng: np.random.RandomState) -> Dict[str, Any]:
        """Draw one raw point uniformly within the bounds"""
        return {p.name: p.sample(rng) for p in self.params}

    def grid(self, resolution: int = 5) -> List[Dict[str, Any]]:
        """Every raw point of the full-factorial grid"""
        values = [p.grid_values(resolution) for p in self.params]
        return [dict(zip(self.names, combo)) for combo in product(*values)]

    def transform(self, point: Mapping[str, Any]) -> Dict[str, Any]:
        """Learner keyword arguments for a raw point"""
        missing = [n for n in self.names if n not in point]
        if missing:
            raise KeyError(f"Missing parameters {missing!r} in point")
        for p in self.params:
            if not p.contains(point[p.name]):
                raise ValueError(f"Value {point[p.name]!r} out of range for {p.name!r}")
        x = dict(point)
        if self.trafo is not None:
            x = self.trafo(x)
        return x


def nodes_to_num_nodes(x: Dict[str, Any]) -> Dict[str, Any]:
    """Replace ``nodes`` and ``k`` by ``num_nodes``: ``k`` layers of ``nodes`` units"""
    x = dict(x)
    nodes = int(x.pop("nodes"))
    k = int(x.pop("k"))
    x["num_nodes"] = [nodes] * k
    return x


def default_neural_search_space() -> SearchSpace:
    """
    Search space shared by the neural learners

    dropout in [0, 1], weight_decay in [0, 0.5], learning_rate in [0, 1],
    and ``k`` hidden layers (1 to 4) of ``nodes`` units each (1 to 32).
    """
    return SearchSpace(
        params=(
            ParamSpec("dropout", "float", 0.0, 1.0),
            ParamSpec("weight_decay", "float", 0.0, 0.5),
            ParamSpec("learning_rate", "float", 0.0, 1.0),
            ParamSpec("nodes", "int", 1, 32),
            ParamSpec("k", "int", 1, 4),
        ),
        trafo=nodes_to_num_nodes,
    )


def specs_from_dict(obj: Any) -> SearchSpace:
    """
    Parse a search space from a dict.

    Expected formats:

    1) {"params": [ {ParamSpec fields...}, ... ]}
    2) [ {ParamSpec fields...}, ... ]  (top-level list)
    """
    if isinstance(obj, list):
        params_obj = obj
    else:
        params_obj = obj.get("params")

    if not isinstance(params_obj, list):
        raise TypeError("Search space definition must be a list or a dict with key 'params' as a list.")

    specs: List[ParamSpec] = []
    for i, p in enumerate(params_obj):
        if not isinstance(p, dict):
            raise TypeError(f"Param definition at index {i} must be a dict; got {type(p)}")
        levels = p.get("levels")
        specs.append(
            ParamSpec(
                name=str(p.get("name") or f"p{i}"),
                kind=str(p.get("kind") or "float"),  # type: ignore[arg-type]
                lower=float(p.get("lower", 0.0)),
                upper=float(p.get("upper", 1.0)),
                log=bool(p.get("log", False)),
                levels=tuple(levels) if levels is not None else None,
            )
        )
    return SearchSpace(params=tuple(specs))
