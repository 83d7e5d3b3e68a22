"""Rich terminal display for habbit."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

_CATEGORY_COLORS: dict[str, str] = {
    "streak": "orange_red1",
    "completions": "green",
    "habits": "deep_sky_blue1",
    "consistency": "gold1",
}


def format_number(n: int) -> str:
    """Format large numbers: 421543 -> '421.5K', 1200 -> '1,200', 1234567 -> '1.2M'."""
    if n >= 1_000_000:
        value = n / 1_000_000
        if value >= 100:
            return f"{value:.0f}M"
        return f"{value:.1f}M"
    if n >= 10_000:
        return f"{n / 1_000:.1f}K"
    return f"{n:,}"


def _xp_bar(current: int, total: int, width: int = 20) -> str:
    """Render a progress bar as text: [████████░░░░░░░░░░░░]."""
    if total <= 0:
        return "[" + "█" * width + "]"
    ratio = max(0.0, min(current / total, 1.0))
    filled = int(ratio * width)
    return "[" + "█" * filled + "░" * (width - filled) + "]"


def print_profile(data: dict) -> None:
    """Print the main panel with level, XP, completions and closest badges."""
    xp_in_level = data.get("xp_in_level", 0)
    xp_for_next = data.get("xp_for_next", 0)

    lines: list[str] = [""]
    lines.append(f"  [bold gold1]Level {data.get('level', 1)}[/]")
    bar = _xp_bar(xp_in_level, xp_for_next)
    if xp_for_next > 0:
        lines.append(f"  {bar} {format_number(xp_in_level)}/{format_number(xp_for_next)} XP")
    else:
        lines.append(f"  {bar} MAX LEVEL")
    lines.append(f"  Total: [bold]{format_number(data.get('total_xp', 0))}[/] XP")

    lines.append("")
    lines.append(
        f"  ✅ Completions: {format_number(data.get('total_completions', 0))}  |  "
        f"This week: {data.get('weekly_completions', 0)}"
    )
    lines.append(
        f"  \U0001f525 Longest streak: {data.get('longest_streak_ever', 0)} days  |  "
        f"\U0001f3c6 Badges: {data.get('badges_unlocked', 0)}/{data.get('badges_total', 0)}"
    )

    closest = data.get("closest_badges", [])
    if closest:
        lines.append("")
        lines.append("  [bold]Almost There:[/]")
        for badge in closest:
            pct = int(badge.get("progress", 0.0) * 100)
            lines.append(f"  ⏳ {badge['name']}: {pct}%")
    lines.append("")

    console.print(
        Panel("\n".join(lines), title="[bold]HABBIT[/]", box=box.ROUNDED, border_style="gold1", width=50)
    )


def print_habits(habits: list[dict]) -> None:
    """Print active habits with their streaks."""
    if not habits:
        print_no_habits_message()
        return
    table = Table(title="Habits", box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Habit", style="bold")
    table.add_column("Schedule")
    table.add_column("Today", justify="center")
    table.add_column("Streak", justify="right")
    table.add_column("Best", justify="right")
    for habit in habits:
        if habit.get("done_today"):
            today = "✅"
        elif habit.get("rest_today"):
            today = "\U0001f4a4"
        else:
            today = "⬜"
        table.add_row(
            habit["name"],
            habit.get("schedule", ""),
            today,
            str(habit.get("current", 0)),
            str(habit.get("longest", 0)),
        )
    console.print(table)


def print_completion_result(result: dict) -> None:
    """Print the outcome of done/undo/qty."""
    if not result.get("ok"):
        console.print(f"[red]Could not save: {result.get('error', 'unknown error')}[/]")
        return
    if not result.get("changed"):
        console.print(f"[grey50]{result.get('habit', '')}: nothing to change[/]")
        return
    xp_delta = result.get("xp_delta", 0)
    sign = "+" if xp_delta >= 0 else ""
    console.print(
        f"[bold]{result.get('habit', '')}[/]  \U0001f525 {result.get('current', 0)}  "
        f"[green]{sign}{xp_delta} XP[/]  (total {format_number(result.get('total_xp', 0))})"
    )
    if result.get("leveled_up"):
        console.print(f"[bold gold1]Level up! You are now level {result.get('level', 1)}[/]")


def print_badge_unlocked(badge: dict) -> None:
    """Print one unlocked badge."""
    color = _CATEGORY_COLORS.get(badge.get("category", ""), "white")
    console.print(
        Panel(
            f"\n  \U0001f3c6 [bold]{badge['name']}[/]\n  {badge.get('description', '')}\n",
            title=f"[bold {color}]Badge Unlocked[/]",
            box=box.ROUNDED,
            border_style=color,
            width=50,
        )
    )


def print_badges(badges: list[dict]) -> None:
    """Print all badges with progress bars, unlocked first."""
    unlocked = [b for b in badges if b.get("unlocked")]
    locked = [b for b in badges if not b.get("unlocked")]
    unlocked.sort(key=lambda b: b.get("unlocked_at") or "", reverse=True)
    locked.sort(key=lambda b: b.get("progress", 0), reverse=True)

    table = Table(title="Badges", box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Badge", min_width=20)
    table.add_column("Category", width=12)
    table.add_column("Progress", min_width=18)
    table.add_column("Date", width=12)

    for badge in unlocked + locked:
        icon = "✅" if badge.get("unlocked") else "⏳"
        category = badge.get("category", "")
        color = _CATEGORY_COLORS.get(category, "white")
        progress = badge.get("progress", 0.0)
        bar = _xp_bar(int(progress * 100), 100, width=10)
        table.add_row(
            icon,
            f"[bold]{badge['name']}[/]\n{badge.get('description', '')}",
            f"[{color}]{category.upper()}[/{color}]",
            f"{bar} {int(progress * 100)}%",
            (badge.get("unlocked_at") or "")[:10],
        )
    console.print(table)


def print_streak(data: dict) -> None:
    lines = [
        "",
        f"  Schedule:        {data.get('schedule', '')}",
        f"  Current streak:  {data.get('current', 0)}",
        f"  Longest streak:  {data.get('longest', 0)}",
    ]
    next_milestone = data.get("next_milestone")
    if next_milestone:
        lines.append(f"  Next milestone:  {next_milestone}")
    lines.append("")
    console.print(
        Panel(
            "\n".join(lines),
            title=f"[bold]{data.get('name', '')}[/]",
            box=box.ROUNDED,
            border_style="orange_red1",
            width=50,
        )
    )


def print_week(data: dict) -> None:
    """Print the weekly review: a bar per day, then completion rate per habit."""
    days = data.get("days", [])
    peak = max([d["count"] for d in days] + [1])
    lines = [""]
    for day in days:
        bar = "█" * round(day["count"] / peak * 20)
        marker = " [bold]<[/]" if day.get("is_today") else ""
        lines.append(f"  {day['weekday']}  {bar:<20} {day['count']}{marker}")
    lines.append("")
    lines.append(
        f"  ✅ Completions: {data.get('total_completions', 0)}  |  "
        f"Active days: {data.get('active_days', 0)}/7"
    )
    perfect = data.get("perfect_habits", [])
    if perfect:
        lines.append(f"  \U0001f451 On target: {', '.join(perfect)}")
    lines.append("")
    console.print(
        Panel(
            "\n".join(lines),
            title=f"[bold]Week of {data.get('week_start', '')}[/]",
            box=box.ROUNDED,
            border_style="gold1",
            width=50,
        )
    )

    habits = data.get("habits", [])
    if not habits:
        return
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Habit", style="bold")
    table.add_column("Done", justify="right")
    table.add_column("Rate", min_width=18)
    for habit in habits:
        pct = int(habit.get("rate", 0.0) * 100)
        table.add_row(
            habit["name"],
            f"{habit.get('done', 0)}/{habit.get('target', 0)}",
            f"{_xp_bar(pct, 100, width=10)} {pct}%",
        )
    console.print(table)


def _heat(count: int, habit_count: int) -> str:
    if count <= 0:
        return "[grey30]■[/]"
    ratio = count / max(habit_count, 1)
    if ratio >= 1:
        return "[bright_green]■[/]"
    if ratio >= 0.5:
        return "[green3]■[/]"
    return "[dark_green]■[/]"


def print_history(data: dict) -> None:
    """Print a contribution grid: one column per week, one row per weekday."""
    days = data.get("days", [])
    habit_count = data.get("habit_count", 0)
    weeks = len(days) // 7
    lines = [""]
    for row in range(7):
        cells = [_heat(days[col * 7 + row]["count"], habit_count) for col in range(weeks)]
        lines.append("  " + " ".join(cells))
    lines.append("")
    lines.append(
        f"  {data.get('start', '')} → {data.get('end', '')}  |  "
        f"{format_number(data.get('total_completions', 0))} completions"
    )
    lines.append("")
    console.print(
        Panel("\n".join(lines), title="[bold]History[/]", box=box.ROUNDED, border_style="green")
    )


def print_config(settings: dict) -> None:
    table = Table(title="Settings", box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in settings.items():
        table.add_row(key, str(value))
    console.print(table)


def print_no_habits_message() -> None:
    console.print(
        Panel(
            "\n  No habits yet. Add one with [bold]habbit add \"Read\"[/].\n",
            title="[bold]HABBIT[/]",
            box=box.ROUNDED,
            border_style="grey50",
            width=50,
        )
    )


def print_error(message: str) -> None:
    console.print(f"[red]{escape(message)}[/]")
