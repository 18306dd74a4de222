"""HTML rendering of the poll page.

Everything is plain string building; every user-supplied value goes through
``h()`` before it reaches the page.
"""

import re
from datetime import datetime
from html import escape
from pathlib import Path

from poll.config import PollConfig, slot_id
from poll.models import Vote
from poll.tally import PRIMARY_WEIGHT, SECONDARY_WEIGHT, PollSummary, bar_heights

STYLESHEET = (Path(__file__).parent / "assets" / "poll.css").read_text(encoding="utf-8")

# Clicking a slot cycles: none -> primary -> secondary -> none. On submit the
# states are turned into primary[] / secondary[] hidden inputs.
SCRIPT = """
function cycleSlot(btn) {
    const states = ['', 'primary', 'secondary'];
    const next = (states.indexOf(btn.dataset.state || '') + 1) % states.length;
    btn.dataset.state = states[next];
}

document.getElementById('pollForm').addEventListener('submit', function () {
    const container = document.getElementById('hiddenInputs');
    container.innerHTML = '';
    document.querySelectorAll('.slot-btn').forEach(function (btn) {
        const state = btn.dataset.state;
        if (state !== 'primary' && state !== 'secondary') {
            return;
        }
        const input = document.createElement('input');
        input.type = 'hidden';
        input.name = state + '[]';
        input.value = btn.dataset.slot;
        container.appendChild(input);
    });
});
"""

_DAY_PREFIX = re.compile(r"^\w+ ")


def h(value) -> str:
    """HTML-escape a value for text and attribute positions."""
    return escape(str(value), quote=True)


def short_slot_label(slot: str) -> str:
    """Drop the leading weekday word: "Mo 10.02. 16:30" -> "10.02. 16:30"."""
    return _DAY_PREFIX.sub("", slot, count=1)


def format_timestamp(value: str) -> str:
    """Format a stored timestamp as "dd.mm. HH:MM"; unparseable values pass through."""
    try:
        return datetime.fromisoformat(value).strftime("%d.%m. %H:%M")
    except (TypeError, ValueError):
        return value


def render_page(
    config: PollConfig,
    summary: PollSummary,
    *,
    current_voter: Vote | None = None,
    voter_name: str = "",
    is_admin: bool = False,
    message: str = "",
    message_type: str = "",
) -> str:
    """Render the complete poll page.

    Args:
        config: Poll configuration (grid, texts)
        summary: Aggregated votes
        current_voter: Stored vote of the visitor, if they voted before
        voter_name: Name remembered for the visitor (pre-fills the form)
        is_admin: Show the ranking and voter list instead of the form
        message: Feedback line shown above the content
        message_type: "success" or "error"
    """
    parts = [
        "<!DOCTYPE html>",
        '<html lang="de">',
        "<head>",
        '    <meta charset="UTF-8">',
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f"    <title>{h(config.title)}</title>",
        f"    <style>\n{STYLESHEET}    </style>",
        "</head>",
        "<body>",
        '<div class="container">',
        "<header>",
        f"    <h1>{h(config.title)}</h1>",
        f'    <p class="description">{h(config.description)}</p>',
        "</header>",
        _render_meta_bar(config, summary, current_voter),
    ]

    if message:
        parts.append(f'<div class="message {h(message_type)}">{h(message)}</div>')

    if is_admin:
        parts.append(_render_admin_view(summary))
    else:
        parts.append(_render_vote_view(config, summary, current_voter, voter_name))

    parts.append(_render_footer(is_admin))
    parts.extend(["</div>", "</body>", "</html>"])
    return "\n".join(parts)


def _render_meta_bar(config: PollConfig, summary: PollSummary, current_voter: Vote | None) -> str:
    items = [
        f"<span>{summary.total_voters} Teilnehmer</span>",
        f"<span>{len(config.slots)} Zeitslots</span>",
    ]
    if current_voter:
        items.append('<span class="voted">Abgestimmt</span>')
    return '<div class="meta-bar">' + "".join(items) + "</div>"


def _render_legend(primary_text: str, secondary_text: str) -> str:
    return (
        '<div class="legend">'
        '<div class="legend-item"><div class="legend-swatch primary"></div>'
        f"<span>{h(primary_text)}</span></div>"
        '<div class="legend-item"><div class="legend-swatch secondary"></div>'
        f"<span>{h(secondary_text)}</span></div>"
        "</div>"
    )


def _grid_style(config: PollConfig) -> str:
    return f"grid-template-columns: 60px repeat({len(config.days)}, 1fr)"


def _grid_header(config: PollConfig) -> list[str]:
    cells = ['<div class="calendar-header corner"></div>']
    for day in config.days:
        cells.append(f'<div class="calendar-header">{h(day.short)}</div>')
    return cells


# ─── Vote view ───

def _render_vote_view(
    config: PollConfig, summary: PollSummary, current_voter: Vote | None, voter_name: str
) -> str:
    name_value = current_voter.name if current_voter else voter_name
    email_value = current_voter.email if current_voter else ""
    heading = "Stimme bearbeiten" if current_voter else "Verfügbarkeit angeben"
    button = "Aktualisieren" if current_voter else "Abstimmen"

    cells = _grid_header(config)
    for time in config.times:
        cells.append(f'<div class="calendar-time">{h(time)}</div>')
        for day in config.days:
            slot = slot_id(day, time)
            state = current_voter.state_for(slot) if current_voter else ""
            cells.append(
                '<div class="calendar-cell">'
                f'<button type="button" class="slot-btn" data-slot="{h(slot)}" '
                f'data-state="{state}" onclick="cycleSlot(this)"></button>'
                "</div>"
            )

    return "\n".join([
        _render_legend("Bevorzugt (1. Wahl)", "Möglich (2. Wahl)"),
        '<form method="POST" id="pollForm">',
        "<section>",
        f"<h2>{heading}</h2>",
        '<div class="form-row">',
        '<div class="field"><label for="name">Name</label>'
        f'<input type="text" id="name" name="name" required value="{h(name_value)}" '
        'placeholder="Max Müller"></div>',
        '<div class="field"><label for="email">E-Mail (optional)</label>'
        f'<input type="email" id="email" name="email" value="{h(email_value)}" '
        'placeholder="max@example.com"></div>',
        "</div>",
        f'<div class="calendar" style="{_grid_style(config)}">',
        *cells,
        "</div>",
        '<div id="hiddenInputs"></div>',
        f'<button type="submit" class="btn">{button}</button>',
        "</section>",
        "</form>",
        _render_results_grid(config, summary),
        f"<script>{SCRIPT}</script>",
    ])


def _render_results_grid(config: PollConfig, summary: PollSummary) -> str:
    cells = _grid_header(config)
    for time in config.times:
        cells.append(f'<div class="calendar-time">{h(time)}</div>')
        for day in config.days:
            slot = slot_id(day, time)
            primary_height, secondary_height = bar_heights(summary.stats[slot], summary.max_total)
            cells.append(
                f'<div class="result-cell" data-slot="{h(slot)}">'
                '<div class="result-bar-stack">'
                f'<div class="result-bar-primary" style="height: {primary_height:.1f}%"></div>'
                f'<div class="result-bar-secondary" style="height: {secondary_height:.1f}%"></div>'
                "</div></div>"
            )

    return "\n".join([
        "<section>",
        "<h2>Ergebnisse</h2>",
        f'<div class="results-calendar" style="{_grid_style(config)}">',
        *cells,
        "</div>",
        "</section>",
    ])


# ─── Admin view ───

def _render_admin_view(summary: PollSummary) -> str:
    return "\n".join([
        _render_legend(
            f"Bevorzugt ({PRIMARY_WEIGHT} Punkte)",
            f"Möglich ({SECONDARY_WEIGHT} Punkt)",
        ),
        _render_ranking(summary),
        _render_voters(summary),
    ])


def _render_ranking(summary: PollSummary) -> str:
    items = []
    for entry in summary.ranking:
        top = " top" if entry.rank <= 3 else ""
        items.append(
            '<div class="rank-item">'
            f'<div class="rank-pos{top}">{entry.rank}</div>'
            f'<div class="rank-slot">{h(entry.slot)}</div>'
            '<div class="rank-stats">'
            f'<div class="score">{entry.stat.score} Punkte</div>'
            f'<div class="breakdown">{entry.stat.primary} bevorzugt, '
            f"{entry.stat.secondary} möglich</div>"
            "</div></div>"
        )
    if not items:
        items.append('<p class="empty">Noch keine Stimmen.</p>')

    return "\n".join([
        "<section>",
        "<h2>Ranking nach Score</h2>",
        '<div class="ranking-list">',
        *items,
        "</div>",
        "</section>",
    ])


def _slot_tags(slots: list[str], kind: str) -> str:
    if not slots:
        return '<span class="slot-none">—</span>'
    return "".join(
        f'<span class="slot-tag {kind}">{h(short_slot_label(slot))}</span>'
        for slot in slots
    )


def _render_voters(summary: PollSummary) -> str:
    if not summary.votes:
        body = '<p class="empty">Noch keine Stimmen.</p>'
    else:
        rows = []
        for vote in summary.votes:
            email = f'<div class="voter-email">{h(vote.email)}</div>' if vote.email else ""
            rows.append(
                "<tr>"
                f'<td><div class="voter-name">{h(vote.name)}</div>{email}</td>'
                f'<td><div class="slot-tags">{_slot_tags(vote.primary_slots, "primary")}</div></td>'
                f'<td><div class="slot-tags">{_slot_tags(vote.secondary_slots, "secondary")}</div></td>'
                f'<td class="meta-cell">{h(format_timestamp(vote.updated_at))}</td>'
                "</tr>"
            )
        body = "\n".join([
            '<table class="voters-table">',
            "<thead><tr><th>Name</th><th>Bevorzugt</th><th>Möglich</th><th>Meta</th></tr></thead>",
            "<tbody>",
            *rows,
            "</tbody>",
            "</table>",
        ])

    return "\n".join([
        "<section>",
        f"<h2>Teilnehmer ({summary.total_voters})</h2>",
        body,
        "</section>",
    ])


def _render_footer(is_admin: bool) -> str:
    if is_admin:
        link = '<a href="?">Zurück zur Abstimmung</a>'
    else:
        link = '<a href="?admin=1">Admin</a>'
    return f"<footer>Meeting Poll · {link}</footer>"
