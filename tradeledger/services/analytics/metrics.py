"""Summary and risk metrics over a user's journaled trades."""

import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass

# Trading days per year used to annualize the per-trade Sharpe ratio
TRADING_DAYS_PER_YEAR = 252

CLOSED = "CLOSED"
OPEN = "OPEN"


@dataclass
class TradeSummary:
    """Headline statistics for a set of trades."""

    total_trades: int
    closed_trades: int
    open_trades: int
    profitable_trades: int
    losing_trades: int
    total_pnl: float
    win_rate: float  # percent, 0-100
    avg_win: float
    avg_loss: float  # <= 0
    largest_win: float  # >= 0
    largest_loss: float  # <= 0
    profit_factor: float  # math.inf when there are wins and no losses

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RiskMetrics:
    """Risk-oriented view of the closed trades."""

    avg_risk_reward: float
    max_drawdown: float
    sharpe_ratio: float
    gross_profit: float
    gross_loss: float
    profit_factor: float
    avg_win: float
    avg_loss: float
    largest_win: float
    largest_loss: float

    def to_dict(self) -> dict:
        return asdict(self)


def compute_profit_loss(
    trade_type: str, entry_price: float, exit_price: float | None, quantity: float
) -> float | None:
    """Realized P&L for a trade, or None while it has no exit price.

    BUY:  (exit - entry) * quantity
    SELL: (entry - exit) * quantity
    """
    if exit_price is None:
        return None
    if trade_type.upper() == "BUY":
        return (exit_price - entry_price) * quantity
    return (entry_price - exit_price) * quantity


def closed_trades(trades: Iterable) -> list:
    """Trades that count toward statistics: status CLOSED with a P&L."""
    return [t for t in trades if t.status == CLOSED and t.profit_loss is not None]


def _profit_factor(gross_profit: float, gross_loss: float) -> float:
    if gross_loss > 0:
        return gross_profit / gross_loss
    return math.inf if gross_profit > 0 else 0.0


def _win_loss_stats(pnls: Sequence[float]) -> dict:
    """Shared win/loss aggregates. Zero-P&L trades are neither wins nor losses."""
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    gross_profit = sum(wins)
    gross_loss = abs(sum(losses))

    return {
        "wins": len(wins),
        "losses": len(losses),
        "gross_profit": gross_profit,
        "gross_loss": gross_loss,
        "avg_win": gross_profit / len(wins) if wins else 0.0,
        "avg_loss": sum(losses) / len(losses) if losses else 0.0,
        "largest_win": max([0.0, *pnls]),
        "largest_loss": min([0.0, *pnls]),
        "profit_factor": _profit_factor(gross_profit, gross_loss),
    }


def compute_summary(trades: Sequence) -> TradeSummary:
    """Counts, P&L totals, win rate and profit factor for a trade list."""
    closed = closed_trades(trades)
    pnls = [t.profit_loss for t in closed]
    stats = _win_loss_stats(pnls)

    return TradeSummary(
        total_trades=len(trades),
        closed_trades=len(closed),
        open_trades=sum(1 for t in trades if t.status == OPEN),
        profitable_trades=stats["wins"],
        losing_trades=stats["losses"],
        total_pnl=sum(pnls),
        win_rate=stats["wins"] / len(closed) * 100 if closed else 0.0,
        avg_win=stats["avg_win"],
        avg_loss=stats["avg_loss"],
        largest_win=stats["largest_win"],
        largest_loss=stats["largest_loss"],
        profit_factor=stats["profit_factor"],
    )


def compute_risk_metrics(trades: Sequence) -> RiskMetrics:
    """Risk/reward, drawdown and Sharpe ratio over closed trades.

    Drawdown is measured over the trades in the order given, so callers pass
    them chronologically when they want a time-ordered drawdown.
    """
    closed = closed_trades(trades)
    pnls = [t.profit_loss for t in closed]
    stats = _win_loss_stats(pnls)

    return RiskMetrics(
        avg_risk_reward=_avg_risk_reward(closed),
        max_drawdown=_compute_max_drawdown(pnls),
        sharpe_ratio=_compute_sharpe(pnls),
        gross_profit=stats["gross_profit"],
        gross_loss=stats["gross_loss"],
        profit_factor=stats["profit_factor"],
        avg_win=stats["avg_win"],
        avg_loss=stats["avg_loss"],
        largest_win=stats["largest_win"],
        largest_loss=stats["largest_loss"],
    )


def _avg_risk_reward(closed: Sequence) -> float:
    """Mean of reward/risk over trades that have both a stop-loss and a take-profit."""
    ratios = []
    for t in closed:
        if t.stop_loss is None or t.take_profit is None:
            continue
        risk = abs(t.entry_price - t.stop_loss)
        reward = abs(t.take_profit - t.entry_price)
        ratios.append(reward / risk if risk > 0 else 0.0)

    if not ratios:
        return 0.0
    return sum(ratios) / len(ratios)


def _compute_max_drawdown(pnls: Sequence[float]) -> float:
    """Largest fall of cumulative P&L from its running peak. The peak starts at zero."""
    peak = 0.0
    cumulative = 0.0
    max_dd = 0.0

    for pnl in pnls:
        cumulative += pnl
        if cumulative > peak:
            peak = cumulative
        drawdown = peak - cumulative
        if drawdown > max_dd:
            max_dd = drawdown

    return max_dd


def _compute_sharpe(pnls: Sequence[float]) -> float:
    """Per-trade Sharpe ratio, annualized with sqrt(252).

    Sharpe = mean(pnl) / population_std(pnl) * sqrt(252)
    Not calendar aware: each trade counts as one period.
    """
    if not pnls:
        return 0.0

    mean_pnl = sum(pnls) / len(pnls)
    variance = sum((p - mean_pnl) ** 2 for p in pnls) / len(pnls)
    std_pnl = math.sqrt(variance)

    # identical P&Ls leave only rounding noise in the variance
    if std_pnl < 1e-12:
        return 0.0

    return (mean_pnl / std_pnl) * math.sqrt(TRADING_DAYS_PER_YEAR)
