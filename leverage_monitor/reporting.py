"""Text rendering of the monitor dashboard."""
from __future__ import annotations

from datetime import datetime

from .models import Alert, AlertLevel, Dashboard

NO_DATA_MESSAGE = "No position data available"

HIGH_LEVERAGE_LTV = 0.6
SAFE_HEALTH_FACTOR = 1.5

_LEVEL_ICONS = {
    AlertLevel.CRITICAL: "🚨",
    AlertLevel.WARNING: "⚠️",
    AlertLevel.INFO: "ℹ️",
}


def format_alert(alert: Alert) -> str:
    """One-line rendering used by reports and notifiers."""
    line = f"{_LEVEL_ICONS[alert.level]} {alert.level.value}: {alert.message}"
    if alert.action_required:
        line += " (action required)"
    return line


def render_report(
    dashboard: Dashboard, generated_at: datetime, asset: str = "SEI"
) -> str:
    """Render the dashboard as a fixed-layout text report."""
    position = dashboard.current_snapshot
    if position is None:
        return NO_DATA_MESSAGE

    perf = dashboard.performance
    last_alerts = dashboard.recent_alerts[-3:]
    alert_lines = [f"├─ {a.level.value}: {a.message}" for a in last_alerts]

    if position.health_factor < SAFE_HEALTH_FACTOR:
        health_line = "├─ ⚠️ Consider adding collateral or repaying debt"
    else:
        health_line = "├─ ✅ Position is healthy"
    if position.loan_to_value > HIGH_LEVERAGE_LTV:
        leverage_line = "├─ ⚠️ High leverage - monitor closely"
    else:
        leverage_line = "├─ ✅ Safe leverage level"

    lines = [
        "📊 LEVERAGE POSITION REPORT",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        "",
        "🏦 POSITION OVERVIEW",
        f"├─ Collateral: {position.collateral:.4f} {asset}",
        f"├─ Debt: {position.debt:.4f} {asset}",
        f"├─ Health Factor: {position.health_factor:.3f}",
        f"├─ LTV: {position.loan_to_value * 100:.2f}%",
        f"├─ Price: ${position.asset_price:.4f}",
        f"├─ Liquidation Price: {position.liquidation_price:.4f} (debt/collateral)",
        f"└─ Net P&L: {position.net_pnl:.4f}",
        "",
        "📈 PERFORMANCE",
        f"├─ Daily Yield: {perf.daily_yield:.4f} {asset}",
        f"├─ Health Trend: {perf.health_trend.value}",
        f"└─ Total Snapshots: {dashboard.snapshot_count}",
        "",
        f"🚨 RECENT ALERTS: {len(dashboard.recent_alerts)}",
        *alert_lines,
        "",
        "💡 RECOMMENDATIONS",
        health_line,
        leverage_line,
        "└─ 🔄 Continue monitoring",
    ]
    return "\n".join(lines)
