"""
Negative log-likelihood losses for the neural survival learners.

All losses take raw network outputs and return a scalar mean loss.
"""

import torch
import torch.nn.functional as F


def _zero_loss(output: torch.Tensor) -> torch.Tensor:
    # keeps the graph attached when a batch holds no events
    return (output * 0.0).sum()


def cox_ph_loss(log_h: torch.Tensor, time: torch.Tensor, event: torch.Tensor) -> torch.Tensor:
    """
    Negative Cox partial log-likelihood (Breslow handling of ties).

    Args:
        log_h: Log relative risk, shape (B,) or (B, 1)
        time: Observed times, shape (B,)
        event: Event indicators, shape (B,)
    """
    log_h = log_h.view(-1)
    order = torch.argsort(time, descending=True)
    log_h = log_h[order]
    event = event[order].float()
    n_events = event.sum()
    if n_events == 0:
        return _zero_loss(log_h)
    # samples sorted by decreasing time: the risk set of i is the prefix [0, i]
    log_risk = torch.logcumsumexp(log_h, dim=0)
    # tied times share the risk set that ends at the last member of their group
    _, counts = torch.unique_consecutive(time[order], return_counts=True)
    group_end = torch.cumsum(counts, dim=0) - 1
    log_risk = log_risk[group_end].repeat_interleave(counts)
    return -((log_h - log_risk) * event).sum() / n_events


def cox_cc_loss(g_case: torch.Tensor, g_control: torch.Tensor) -> torch.Tensor:
    """
    Case-control approximation of the Cox partial likelihood.

    Args:
        g_case: Log risk of each event at its own event time, shape (B,)
        g_control: Log risk of one sampled control from the risk set, shape (B,)
    """
    if g_case.numel() == 0:
        return _zero_loss(g_case)
    return F.softplus(g_control.view(-1) - g_case.view(-1)).mean()


def nll_logistic_hazard(phi: torch.Tensor, idx: torch.Tensor, event: torch.Tensor) -> torch.Tensor:
    """
    Negative log-likelihood of the discrete-time logistic hazard model.

    Args:
        phi: Hazard logits per grid point, shape (B, m)
        idx: Grid index of each duration, shape (B,)
        event: Event indicators, shape (B,)
    """
    idx = idx.long().view(-1, 1)
    target = torch.zeros_like(phi).scatter(1, idx, event.float().view(-1, 1))
    bce = F.binary_cross_entropy_with_logits(phi, target, reduction='none')
    # only the grid points up to and including the duration contribute
    grid = torch.arange(phi.shape[1], device=phi.device).view(1, -1)
    mask = (grid <= idx).float()
    return (bce * mask).sum(dim=1).mean()


def nll_pc_hazard(phi: torch.Tensor,
                  idx: torch.Tensor,
                  event: torch.Tensor,
                  frac: torch.Tensor,
                  widths: torch.Tensor) -> torch.Tensor:
    """
    Negative log-likelihood of the piecewise-constant hazard model.

    Args:
        phi: Log hazard per interval, shape (B, m - 1)
        idx: Interval index of each duration, shape (B,)
        event: Event indicators, shape (B,)
        frac: Elapsed fraction of the interval, shape (B,)
        widths: Interval widths, shape (m - 1,)
    """
    idx = idx.long().view(-1, 1)
    haz = torch.exp(phi) * widths.view(1, -1)
    grid = torch.arange(phi.shape[1], device=phi.device).view(1, -1)
    full = (haz * (grid < idx).float()).sum(dim=1)
    partial = haz.gather(1, idx).view(-1) * frac.view(-1)
    log_h = phi.gather(1, idx).view(-1) * event.float()
    return -(log_h - full - partial).mean()


def _pmf(phi: torch.Tensor) -> torch.Tensor:
    # one extra zero logit carries the mass beyond the last grid point
    pad = torch.zeros(phi.shape[0], 1, dtype=phi.dtype, device=phi.device)
    return torch.softmax(torch.cat([phi, pad], dim=1), dim=1)


def nll_pmf(phi: torch.Tensor, idx: torch.Tensor, event: torch.Tensor,
            epsilon: float = 1e-7) -> torch.Tensor:
    """
    Negative log-likelihood of a discrete-time probability mass function.

    Events contribute ``log p(idx)``, censored samples ``log S(idx)``.
    """
    pmf = _pmf(phi)
    idx = idx.long().view(-1, 1)
    event = event.float()
    p_event = pmf.gather(1, idx).view(-1)
    cdf = pmf.cumsum(dim=1).gather(1, idx).view(-1)
    surv = (1.0 - cdf).clamp(min=0.0)
    ll = event * torch.log(p_event + epsilon) + (1 - event) * torch.log(surv + epsilon)
    return -ll.mean()


def rank_loss_deephit(phi: torch.Tensor, idx: torch.Tensor, event: torch.Tensor,
                      sigma: float) -> torch.Tensor:
    """
    DeepHit ranking loss.

    For every acceptable pair (i has an event before j's duration) penalise
    ``exp(-(F_i(t_i) - F_j(t_i)) / sigma)``.
    """
    pmf = _pmf(phi)
    idx = idx.long().view(-1)
    cdf = pmf.cumsum(dim=1)
    # F_j(t_i) for all pairs: rows i, columns j
    cdf_at = cdf[:, idx].t()
    diag = cdf_at.diagonal().view(-1, 1)
    event = event.float().view(-1, 1)
    pairs = (idx.view(-1, 1) < idx.view(1, -1)).float() * event
    n_pairs = pairs.sum()
    if n_pairs == 0:
        return _zero_loss(phi)
    loss = pairs * torch.exp(-(diag - cdf_at) / sigma)
    return loss.sum() / n_pairs


def deephit_loss(phi: torch.Tensor, idx: torch.Tensor, event: torch.Tensor,
                 alpha: float = 0.2, sigma: float = 0.1) -> torch.Tensor:
    """Weighted sum of the PMF likelihood and the ranking loss."""
    nll = nll_pmf(phi, idx, event)
    rank = rank_loss_deephit(phi, idx, event, sigma)
    return alpha * nll + (1.0 - alpha) * rank
