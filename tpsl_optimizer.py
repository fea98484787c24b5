#!/usr/bin/env python3
"""
TP/SL grid search.

Every (tp, sl) cell reclassifies the whole working set: clamping is
non-linear in tp/sl, so cells cannot be derived from one another. Cells
are ranked by efficiency (average return per unit of stop-loss risk)
rather than total return, since the widest stop trivially maximizes the
latter.

The grid is computed once; the "best overall" and "best SL for a given
TP" questions are selection steps over the same cell list.
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from logging_utils import get_logger, log_elapsed
from outcome_classifier import classify
from risk_metrics import ReturnTally
from trade_models import OptimizationCell, Trade, safe_div

LOG = get_logger("tpsl_optimizer")


def build_range(start: float, stop: float, step: float) -> List[float]:
    """Inclusive float range without accumulated step drift."""
    if step <= 0 or stop < start:
        return []
    lo = Decimal(str(start))
    hi = Decimal(str(stop))
    inc = Decimal(str(step))
    out: List[float] = []
    cur = lo
    while cur <= hi:
        out.append(float(cur))
        cur += inc
    return out


def efficiency(avg_return: float, sl: float) -> float:
    # sl == 0 is defined as 0 so the surface stays renderable.
    if sl <= 0:
        return 0.0
    return avg_return / sl


def evaluate_cell(raw_returns: Sequence[float], tp: float, sl: float) -> OptimizationCell:
    tally = ReturnTally()
    for raw in raw_returns:
        tally.add(classify(raw, tp, sl).clamped_return)
    avg_return = safe_div(tally.total, tally.count)
    return OptimizationCell(
        tp=float(tp),
        sl=float(sl),
        count=tally.count,
        total_return=tally.total,
        avg_return=avg_return,
        win_rate=tally.win_rate,
        profit_factor=tally.profit_factor,
        efficiency=efficiency(avg_return, sl),
    )


def _evaluate_row(raw_returns: Sequence[float], tp: float, sl_values: Sequence[float]) -> List[OptimizationCell]:
    return [evaluate_cell(raw_returns, tp, sl) for sl in sl_values]


def optimize(
    trades: Iterable[Trade],
    tp_range: Sequence[float],
    sl_range: Sequence[float],
    max_sl_tolerance: float,
    max_workers: int = 1,
) -> List[OptimizationCell]:
    """Evaluate every (tp, sl) with sl <= max_sl_tolerance.

    Cells come back in tp-major, sl-minor order regardless of max_workers.
    With max_workers > 1 each TP row runs in a worker thread that returns
    its own list; rows are merged only after every worker is done. Rows are
    pure Python and hold the GIL, so threading does not make the grid faster.
    """
    raw_returns = tuple(t.raw_return for t in trades)
    sl_values = [float(sl) for sl in sl_range if sl <= max_sl_tolerance]
    tp_values = [float(tp) for tp in tp_range]
    if not tp_values or not sl_values:
        return []

    with log_elapsed(LOG, f"grid {len(tp_values)}x{len(sl_values)} over {len(raw_returns)} trades"):
        if max_workers <= 1 or len(tp_values) == 1:
            rows = [_evaluate_row(raw_returns, tp, sl_values) for tp in tp_values]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as ex:
                futures = [ex.submit(_evaluate_row, raw_returns, tp, sl_values) for tp in tp_values]
                rows = [fut.result() for fut in futures]

    return [cell for row in rows for cell in row]


def _within(cells: Iterable[OptimizationCell], max_sl_tolerance: Optional[float]) -> List[OptimizationCell]:
    if max_sl_tolerance is None:
        return list(cells)
    return [c for c in cells if c.sl <= max_sl_tolerance]


def _max_efficiency(cells: Iterable[OptimizationCell]) -> Optional[OptimizationCell]:
    best: Optional[OptimizationCell] = None
    for cell in cells:
        # First cell in grid order wins ties.
        if best is None or cell.efficiency > best.efficiency:
            best = cell
    return best


def best_cell(
    cells: Iterable[OptimizationCell],
    max_sl_tolerance: Optional[float] = None,
) -> Optional[OptimizationCell]:
    return _max_efficiency(_within(cells, max_sl_tolerance))


def best_cell_for_tp(
    cells: Iterable[OptimizationCell],
    tp: float,
    max_sl_tolerance: Optional[float] = None,
) -> Optional[OptimizationCell]:
    """Best stop for a fixed take-profit target."""
    return _max_efficiency(c for c in _within(cells, max_sl_tolerance) if c.tp == float(tp))


def best_per_tp(
    cells: Iterable[OptimizationCell],
    max_sl_tolerance: Optional[float] = None,
) -> List[OptimizationCell]:
    """One recommended cell per TP, in ascending TP order."""
    by_tp: Dict[float, List[OptimizationCell]] = {}
    for cell in _within(cells, max_sl_tolerance):
        by_tp.setdefault(cell.tp, []).append(cell)
    out: List[OptimizationCell] = []
    for tp in sorted(by_tp):
        best = _max_efficiency(by_tp[tp])
        if best is not None:
            out.append(best)
    return out


def sl_curve(cells: Iterable[OptimizationCell], tp: float) -> List[OptimizationCell]:
    """Cells sharing one TP, ordered by SL (efficiency-vs-stop series)."""
    return sorted((c for c in cells if c.tp == float(tp)), key=lambda c: c.sl)


@dataclass
class OptimizationGrid:
    tp_range: List[float]
    sl_range: List[float]
    max_sl_tolerance: float
    cells: List[OptimizationCell] = field(default_factory=list)

    @classmethod
    def compute(
        cls,
        trades: Iterable[Trade],
        tp_range: Sequence[float],
        sl_range: Sequence[float],
        max_sl_tolerance: float,
        max_workers: int = 1,
    ) -> "OptimizationGrid":
        cells = optimize(trades, tp_range, sl_range, max_sl_tolerance, max_workers=max_workers)
        return cls(
            tp_range=[float(tp) for tp in tp_range],
            sl_range=[float(sl) for sl in sl_range if sl <= max_sl_tolerance],
            max_sl_tolerance=float(max_sl_tolerance),
            cells=cells,
        )

    def best(self) -> Optional[OptimizationCell]:
        return best_cell(self.cells, self.max_sl_tolerance)

    def best_for_tp(self, tp: float) -> Optional[OptimizationCell]:
        return best_cell_for_tp(self.cells, tp, self.max_sl_tolerance)

    def best_per_tp(self) -> List[OptimizationCell]:
        return best_per_tp(self.cells, self.max_sl_tolerance)

    def sl_curve(self, tp: float) -> List[OptimizationCell]:
        return sl_curve(self.cells, tp)
