"""Chat assistant: summarizes the user's journal into a prompt for Claude.

The prompt carries overall and current-month statistics, the month's goal,
recent and starred trades, tracked mistakes, active rules and notification
preferences. Any failure talking to the model surfaces as
AssistantUnavailable.
"""

import logging
from collections.abc import Sequence
from datetime import date, tzinfo

import anthropic

from tradeledger.config import Settings
from tradeledger.services.analytics import (
    TradeSummary,
    compute_summary,
    filter_by_month,
    local_date,
)
from tradeledger.services.reports import format_amount

logger = logging.getLogger(__name__)

RECENT_TRADES_LIMIT = 10

GUIDELINES = """## GUIDELINES
1. Answer questions about the user's trading performance, statistics, and history.
2. Provide insights and analysis based on the data.
3. Help identify patterns, strengths, and areas for improvement.
4. When asked about specific dates or months, use the trade information provided.
5. Be encouraging but honest about trading performance.
6. Suggest improvements based on the user's mistakes and rules.
7. Keep responses concise but informative.
8. If asked about data that is not available, explain what data is available.
9. Format all monetary values with the {currency} symbol."""


class AssistantUnavailable(Exception):
    """The language model could not produce an answer."""

    def __init__(self, message: str = "Assistant unavailable") -> None:
        super().__init__(message)


def _profit_factor_text(value: float) -> str:
    return "Infinity" if value == float("inf") else f"{value:.2f}"


def _trade_line(
    index: int, trade, currency: str, with_notes: bool = False, tz: tzinfo | None = None
) -> str:
    pnl = format_amount(trade.profit_loss, currency) if trade.profit_loss is not None else "Open"
    line = (
        f"{index}. {trade.symbol} ({trade.trade_type}) - {trade.status} - P&L: {pnl}"
        f" - Date: {local_date(trade.trade_date, tz):%Y-%m-%d}"
    )
    if with_notes and trade.notes:
        line += f" - Notes: {trade.notes}"
    return line


def _stats_block(stats: TradeSummary, currency: str) -> list[str]:
    return [
        f"- Total Trades: {stats.total_trades}",
        f"- Closed Trades: {stats.closed_trades}",
        f"- Open Trades: {stats.open_trades}",
        f"- Total P&L: {format_amount(stats.total_pnl, currency)}",
        f"- Win Rate: {stats.win_rate:.1f}%",
        f"- Profitable Trades: {stats.profitable_trades}",
        f"- Losing Trades: {stats.losing_trades}",
        f"- Average Win: {format_amount(stats.avg_win, currency)}",
        f"- Average Loss: {format_amount(stats.avg_loss, currency)}",
        f"- Largest Win: {format_amount(stats.largest_win, currency)}",
        f"- Largest Loss: {format_amount(stats.largest_loss, currency)}",
        f"- Profit Factor: {_profit_factor_text(stats.profit_factor)}",
    ]


def build_context_prompt(
    trades: Sequence,
    goals: Sequence,
    mistakes: Sequence,
    rules: Sequence,
    notifications=None,
    today: date | None = None,
    currency: str = "$",
    tz: tzinfo | None = None,
) -> str:
    """System prompt with the user's data. trades are expected newest first.

    Month bucketing and trade dates use tz, matching the analytics views.
    """
    today = today or date.today()
    stats = compute_summary(trades)
    month_stats = compute_summary(filter_by_month(trades, today.month, today.year, tz))
    goal = next((g for g in goals if g.month == today.month and g.year == today.year), None)
    starred = [t for t in trades if t.is_starred]
    active_rules = [r for r in rules if r.is_active]

    lines = [
        "You are TradeLedger AI, an assistant inside a personal trading journal. "
        "You help traders analyze their performance, track progress and spot patterns "
        "using only the data below.",
        "",
        f"Current Date: {today:%A, %B %d, %Y}",
        "",
        "## OVERALL TRADING STATISTICS",
        *_stats_block(stats, currency),
        "",
        f"## CURRENT MONTH ({today:%B %Y}) STATISTICS",
        f"- Trades This Month: {month_stats.total_trades}",
        f"- Month P&L: {format_amount(month_stats.total_pnl, currency)}",
        f"- Month Win Rate: {month_stats.win_rate:.1f}%",
        "",
        "## CURRENT MONTH GOALS",
    ]

    if goal is None:
        lines.append("No goals set for this month.")
    else:
        lines.append(
            "- Target P&L: "
            + (format_amount(goal.target_pnl, currency) if goal.target_pnl else "Not set")
        )
        lines.append(
            "- Target Win Rate: "
            + (f"{goal.target_win_rate:g}%" if goal.target_win_rate else "Not set")
        )
        lines.append(f"- Max Trades Per Day: {goal.max_trades_per_day or 'Not set'}")

    lines += ["", f"## RECENT TRADES (Last {RECENT_TRADES_LIMIT})"]
    recent = list(trades[:RECENT_TRADES_LIMIT])
    if recent:
        lines += [_trade_line(i, t, currency, tz=tz) for i, t in enumerate(recent, 1)]
    else:
        lines.append("No trades recorded yet.")

    lines += ["", "## STARRED/BEST TRADES"]
    if starred:
        lines += [_trade_line(i, t, currency, with_notes=True, tz=tz) for i, t in enumerate(starred, 1)]
    else:
        lines.append("No starred trades.")

    lines += ["", "## TRADING MISTAKES TRACKED"]
    if mistakes:
        for i, m in enumerate(mistakes, 1):
            line = f"{i}. {m.title} (Category: {m.category or 'Uncategorized'}, Frequency: {m.frequency})"
            if m.description:
                line += f" - {m.description}"
            lines.append(line)
    else:
        lines.append("No mistakes tracked.")

    lines += ["", "## TRADING RULES"]
    if active_rules:
        lines += [f"{i}. {r.rule}" for i, r in enumerate(active_rules, 1)]
    else:
        lines.append("No active trading rules.")

    weekly = notifications is not None and notifications.weekly_reports
    alerts = notifications is not None and notifications.goal_alerts
    lines += [
        "",
        "## NOTIFICATION SETTINGS",
        f"- Weekly Reports: {'Enabled' if weekly else 'Disabled'}",
        f"- Goal Alerts: {'Enabled' if alerts else 'Disabled'}",
        "",
        GUIDELINES.format(currency=currency),
    ]
    return "\n".join(lines)


class TradingAssistant:
    """Answers questions about a user's journal with Claude.

    Built once at startup; the underlying client is created on first use.
    """

    def __init__(self, config: Settings, client: anthropic.AsyncAnthropic | None = None) -> None:
        self._config = config
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self._config.anthropic_api_key:
                raise AssistantUnavailable("Assistant unavailable: ANTHROPIC_API_KEY not configured")
            self._client = anthropic.AsyncAnthropic(api_key=self._config.anthropic_api_key)
        return self._client

    async def generate(self, prompt_text: str, question: str) -> str:
        """Answer question with prompt_text as the system prompt."""
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self._config.assistant_model,
                max_tokens=self._config.assistant_max_tokens,
                system=prompt_text,
                messages=[{"role": "user", "content": question}],
            )
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", e)
            raise AssistantUnavailable() from e

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        if not text:
            logger.error("Claude returned no text content")
            raise AssistantUnavailable()
        return text

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
