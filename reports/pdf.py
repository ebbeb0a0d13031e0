"""Printable strategy card and practice plan documents."""

import io
import logging
from datetime import date
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

DARK_GREEN = colors.HexColor("#1a472a")
LIGHT_GREEN = colors.HexColor("#7cb97c")
RED = colors.HexColor("#c44536")
YELLOW = colors.HexColor("#d4a017")
GREEN = colors.HexColor("#3d8b40")
GRAY = colors.HexColor("#666666")
LIGHT_GRAY = colors.HexColor("#f5f5f5")

LIGHT_COLORS = {"red": RED, "yellow": YELLOW, "green": GREEN}

PAGE_WIDTH, PAGE_HEIGHT = LETTER
MARGIN = 40
HEADER_HEIGHT = 80
FOOTER_HEIGHT = 60
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

# Per-field truncation lengths
MAX_TITLE_CHARS = 40
MAX_NAME_CHARS = 40
MAX_MISS_CHARS = 40
MAX_INSIGHT_CHARS = 320
MAX_HOLE_LIST_CHARS = 200
MAX_STRATEGY_CHARS = 260
MAX_MANTRA_CHARS = 120
MAX_FOOTER_CHARS = 150
MAX_DRILL_CHARS = 300
MAX_STEP_CHARS = 180
MAX_CELL_CHARS = 24

MAX_TROUBLE_HOLES = 3
MAX_MANTRAS = 3

DEFAULT_FOOTER_MANTRA = "Fairway finder on trouble holes. Swing free, not hard. Trust the short game."
FOOTER_CREDIT = "Generated by Fairway Strategy"

AnalysisInput = Union[AnalysisResult, Mapping[str, Any]]


def truncate(text: Any, limit: int) -> str:
    """Collapse whitespace and cut to limit characters, ending with an ellipsis."""
    if text is None:
        return ""
    value = " ".join(str(text).split())
    if len(value) <= limit:
        return value
    return value[: limit - 3].rstrip() + "..."


def _coerce_analysis(analysis: AnalysisInput) -> AnalysisResult:
    if isinstance(analysis, AnalysisResult):
        return analysis
    return AnalysisResult.model_validate(analysis)


def _format_handicap(value: Any) -> str:
    if value is None or value == "":
        return "?"
    try:
        return f"{float(value):g}"
    except (TypeError, ValueError):
        return str(value)


def _join_holes(values: Iterable[Any]) -> str:
    return ", ".join(str(v) for v in values)


# ================================================================
# Styles
# ================================================================

def _build_styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "section": ParagraphStyle(
            "Section", parent=base["Heading2"], fontName="Helvetica-Bold",
            fontSize=11, textColor=DARK_GREEN, spaceBefore=12, spaceAfter=6,
        ),
        "subheading": ParagraphStyle(
            "Subheading", parent=base["Normal"], fontName="Helvetica-Bold",
            fontSize=10, textColor=DARK_GREEN, spaceAfter=2,
        ),
        "body": ParagraphStyle(
            "Body", parent=base["Normal"], fontName="Helvetica",
            fontSize=9, leading=12, textColor=GRAY,
        ),
        "accent": ParagraphStyle(
            "Accent", parent=base["Normal"], fontName="Helvetica",
            fontSize=9, leading=12, textColor=LIGHT_GREEN,
        ),
        "italic": ParagraphStyle(
            "Italic", parent=base["Normal"], fontName="Helvetica-Oblique",
            fontSize=10, leading=13, textColor=GRAY,
        ),
        "stat_value": ParagraphStyle(
            "StatValue", parent=base["Normal"], fontName="Helvetica-Bold",
            fontSize=16, leading=20, alignment=TA_CENTER, textColor=LIGHT_GREEN,
        ),
        "stat_label": ParagraphStyle(
            "StatLabel", parent=base["Normal"], fontName="Helvetica",
            fontSize=7, alignment=TA_CENTER, textColor=GRAY,
        ),
        "cell": ParagraphStyle(
            "Cell", parent=base["Normal"], fontName="Helvetica", fontSize=8, leading=10, textColor=GRAY,
        ),
    }


def _p(text: str, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(text), style)


# ================================================================
# Page decorations
# ================================================================

def _header_painter(title: str, subtitle: str) -> Callable:
    def paint(canvas, doc):
        canvas.saveState()
        canvas.setFillColor(DARK_GREEN)
        canvas.rect(0, PAGE_HEIGHT - HEADER_HEIGHT, PAGE_WIDTH, HEADER_HEIGHT, fill=1, stroke=0)
        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 24)
        canvas.drawString(MARGIN, PAGE_HEIGHT - 45, title)
        canvas.setFont("Helvetica", 12)
        canvas.drawString(MARGIN, PAGE_HEIGHT - 65, subtitle)
        canvas.restoreState()
    return paint


def _footer_painter(mantra: str) -> Callable:
    def paint(canvas, doc):
        canvas.saveState()
        canvas.setFillColor(DARK_GREEN)
        canvas.rect(0, 0, PAGE_WIDTH, FOOTER_HEIGHT, fill=1, stroke=0)
        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 10)
        canvas.drawString(MARGIN, FOOTER_HEIGHT - 22, "MANTRA:")
        canvas.setFont("Helvetica", 9)
        canvas.drawString(MARGIN + 55, FOOTER_HEIGHT - 22, mantra)
        canvas.setFont("Helvetica", 8)
        canvas.drawString(MARGIN, 14, f"{FOOTER_CREDIT}  |  Page {doc.page}")
        canvas.restoreState()
    return paint


def _build_document(story: List, on_page: Callable, with_footer: bool) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=LETTER,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=HEADER_HEIGHT + 20,
        bottomMargin=(FOOTER_HEIGHT if with_footer else 0) + 30,
    )
    if not story:
        story = [Spacer(1, 1)]
    doc.build(story, onFirstPage=on_page, onLaterPages=on_page)
    return buffer.getvalue()


# ================================================================
# Strategy card sections
# ================================================================

def _key_insight(result: AnalysisResult, styles: dict) -> List:
    insight = result.summary.key_insight
    if not insight:
        return []
    return [
        _p("KEY INSIGHT", styles["section"]),
        _p(truncate(insight, MAX_INSIGHT_CHARS), styles["body"]),
    ]


def _traffic_lights(result: AnalysisResult, styles: dict) -> List:
    plan = result.course_strategy
    if plan is None:
        return []
    rows = []
    row_colors = []
    for label, holes, color in (
        ("RED LIGHT - Play safe", plan.red_light_holes, RED),
        ("YELLOW LIGHT - Conditional", plan.yellow_light_holes, YELLOW),
        ("GREEN LIGHT - Attack", plan.green_light_holes, GREEN),
    ):
        if holes:
            rows.append([
                _p(label, styles["subheading"]),
                _p(truncate(_join_holes(holes), MAX_HOLE_LIST_CHARS), styles["body"]),
            ])
            row_colors.append(color)
    if not rows and not plan.overall_approach:
        return []

    story = [_p("TEE SHOT STRATEGY", styles["section"])]
    if rows:
        table = Table(rows, colWidths=[150, CONTENT_WIDTH - 150])
        table_style = TableStyle([
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ])
        for i, color in enumerate(row_colors):
            table_style.add("LINEBEFORE", (0, i), (0, i), 4, color)
        table.setStyle(table_style)
        story.append(table)
    if plan.overall_approach:
        story.append(Spacer(1, 4))
        story.append(_p(truncate(plan.overall_approach, MAX_STRATEGY_CHARS), styles["italic"]))
    return story


def _trouble_holes(result: AnalysisResult, styles: dict) -> List:
    holes = result.trouble_holes[:MAX_TROUBLE_HOLES]
    if not holes:
        return []
    story = [_p("TROUBLE HOLES - STRATEGIES", styles["section"])]
    for hole in holes:
        block = [_p(truncate(hole.type or "Trouble holes", MAX_STRATEGY_CHARS), styles["subheading"])]
        if hole.specific_holes:
            block.append(_p(f"Holes: {_join_holes(hole.specific_holes)}", styles["body"]))
        if hole.strategy:
            block.append(_p(f"Strategy: {truncate(hole.strategy, MAX_STRATEGY_CHARS)}", styles["body"]))
        if hole.club_recommendation:
            block.append(_p(f"Club: {truncate(hole.club_recommendation, MAX_STRATEGY_CHARS)}", styles["body"]))
        if hole.acceptable_score:
            block.append(_p(f"Target: {hole.acceptable_score}", styles["accent"]))
        table = Table([[block]], colWidths=[CONTENT_WIDTH])
        table.setStyle(TableStyle([
            ("LINEABOVE", (0, 0), (-1, 0), 3, RED),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]))
        story.append(KeepTogether([table]))
    return story


def _par_strategy(result: AnalysisResult, styles: dict) -> List:
    strategy = result.par_strategy
    if strategy is None:
        return []
    rows = []
    for label, advice in (("Par 3s", strategy.par3), ("Par 4s", strategy.par4), ("Par 5s", strategy.par5)):
        if advice is None or not (advice.approach or advice.target):
            continue
        text = truncate(advice.approach, MAX_STRATEGY_CHARS)
        if advice.target:
            text = f"{text} (target: {advice.target})" if text else f"Target: {advice.target}"
        rows.append([_p(label, styles["subheading"]), _p(text, styles["body"])])
    if not rows:
        return []
    table = Table(rows, colWidths=[70, CONTENT_WIDTH - 70])
    table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    return [_p("PAR STRATEGY", styles["section"]), table]


def _hole_by_hole(result: AnalysisResult, styles: dict) -> List:
    plans = sorted(result.hole_by_hole, key=lambda h: h.hole)
    if not plans:
        return []
    header = ["Hole", "Par", "Yds", "Tee club", "Target", "Plan"]
    rows = [header]
    for plan in plans:
        rows.append([
            str(plan.hole),
            str(plan.par) if plan.par is not None else "-",
            str(plan.yardage) if plan.yardage is not None else "-",
            truncate(plan.tee_club, MAX_CELL_CHARS),
            truncate(plan.target_score, MAX_CELL_CHARS),
            _p(truncate(plan.strategy, MAX_STRATEGY_CHARS), styles["cell"]),
        ])
    table = Table(rows, colWidths=[32, 28, 36, 80, 56, CONTENT_WIDTH - 232], repeatRows=1)
    table_style = TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), DARK_GREEN),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
    ])
    for i, plan in enumerate(plans, start=1):
        color = LIGHT_COLORS.get((plan.light or "").lower())
        if color is not None:
            table_style.add("LINEBEFORE", (0, i), (0, i), 4, color)
    table.setStyle(table_style)
    return [_p("HOLE-BY-HOLE PLAN", styles["section"]), table]


def _target_stats(result: AnalysisResult, styles: dict) -> List:
    targets = result.target_stats
    if targets is None:
        return []
    stats = [
        (label, value) for label, value in (
            ("Fairways", targets.fairways_hit),
            ("Penalties", targets.penalties_per_round),
            ("GIR", targets.gir),
            ("Up & Down", targets.up_and_down),
            ("Putts", targets.putts_per_round),
        ) if value
    ]
    if not stats:
        return []
    cells = [
        [_p(truncate(value, 12), styles["stat_value"]), _p(label.upper(), styles["stat_label"])]
        for label, value in stats
    ]
    width = CONTENT_WIDTH / len(cells)
    table = Table([cells], colWidths=[width] * len(cells))
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), LIGHT_GRAY),
        ("BOX", (0, 0), (-1, -1), 0, colors.white),
        ("INNERGRID", (0, 0), (-1, -1), 4, colors.white),
        ("TOPPADDING", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    return [_p("TARGET STATS", styles["section"]), table]


def _mantras(result: AnalysisResult, styles: dict) -> List:
    mantras = result.mental_game.mantras[:MAX_MANTRAS] if result.mental_game else []
    if not mantras:
        return []
    story = [_p("MENTAL MANTRAS", styles["section"])]
    for mantra in mantras:
        table = Table([[_p(f'"{truncate(mantra, MAX_MANTRA_CHARS)}"', styles["italic"])]], colWidths=[CONTENT_WIDTH])
        table.setStyle(TableStyle([("LINEBEFORE", (0, 0), (0, 0), 3, LIGHT_GREEN)]))
        story.append(table)
        story.append(Spacer(1, 4))
    return story


def _handicap_path(result: AnalysisResult, styles: dict) -> List:
    path = result.handicap_path
    if path is None:
        return []
    story = []
    if path.current_benchmark:
        story.append(_p(f"Now: {truncate(path.current_benchmark, MAX_STRATEGY_CHARS)}", styles["body"]))
    if path.next_benchmark:
        story.append(_p(f"Next: {truncate(path.next_benchmark, MAX_STRATEGY_CHARS)}", styles["body"]))
    for gap in path.biggest_gaps:
        story.append(_p(f"- Gap: {truncate(gap, MAX_STEP_CHARS)}", styles["body"]))
    for i, step in enumerate(path.steps, start=1):
        story.append(_p(f"{i}. {truncate(step, MAX_STEP_CHARS)}", styles["body"]))
    if path.timeline:
        story.append(_p(f"Timeline: {truncate(path.timeline, MAX_STEP_CHARS)}", styles["accent"]))
    if not story:
        return []
    return [_p("HANDICAP PATH", styles["section"])] + story


def render_strategy_card(
    analysis: AnalysisInput,
    golfer: Mapping[str, Any],
    generated_on: Optional[date] = None,
) -> bytes:
    """Render the one-look strategy card for an analysis as PDF bytes."""
    result = _coerce_analysis(analysis)
    styles = _build_styles()

    story: List = []
    for section in (
        _key_insight,
        _traffic_lights,
        _trouble_holes,
        _par_strategy,
        _hole_by_hole,
        _target_stats,
        _mantras,
        _handicap_path,
    ):
        story.extend(section(result, styles))

    title = truncate((golfer.get("home_course") or "Course Strategy").upper(), MAX_TITLE_CHARS)
    subtitle = (
        f"{truncate(golfer.get('name') or 'Golfer', MAX_NAME_CHARS)}  |  {_format_handicap(golfer.get('handicap'))} Handicap  |  "
        f"{(generated_on or date.today()).strftime('%m/%d/%Y')}"
    )
    pre_shot = result.mental_game.pre_shot if result.mental_game else None
    mantra = truncate(pre_shot or DEFAULT_FOOTER_MANTRA, MAX_FOOTER_CHARS)

    header = _header_painter(title, subtitle)
    footer = _footer_painter(mantra)

    def decorate(canvas, doc):
        header(canvas, doc)
        footer(canvas, doc)

    pdf = _build_document(story, decorate, with_footer=True)
    logger.debug("Rendered strategy card (%d bytes)", len(pdf))
    return pdf


# ================================================================
# Practice plan
# ================================================================

def _drill_box(drill, styles: dict) -> Table:
    title = truncate(drill.name or "Drill", MAX_STRATEGY_CHARS)
    heading = Table(
        [[_p(title, styles["subheading"]), _p(truncate(drill.reps, MAX_CELL_CHARS), styles["accent"])]],
        colWidths=[CONTENT_WIDTH - 110, 90],
    )
    heading.setStyle(TableStyle([
        ("ALIGN", (1, 0), (1, 0), "RIGHT"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    content = [heading]
    if drill.description:
        content.append(_p(truncate(drill.description, MAX_DRILL_CHARS), styles["body"]))
    if drill.why:
        content.append(_p(f"Why: {truncate(drill.why, MAX_STEP_CHARS)}", styles["accent"]))
    box = Table([[content]], colWidths=[CONTENT_WIDTH])
    box.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), LIGHT_GRAY),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    return box


def _weekly_schedule(result: AnalysisResult, styles: dict) -> List:
    sessions = result.practice_plan.weekly_schedule if result.practice_plan else []
    story: List = []
    for session in sessions:
        heading = truncate(session.session or "Practice session", MAX_STRATEGY_CHARS)
        if session.duration:
            heading = f"{heading} ({truncate(session.duration, MAX_CELL_CHARS)})"
        block = [_p(heading.upper(), styles["section"])]
        if session.focus:
            block.append(_p(truncate(session.focus, MAX_STRATEGY_CHARS), styles["italic"]))
            block.append(Spacer(1, 4))
        if session.drills:
            block.append(_drill_box(session.drills[0], styles))
        story.append(KeepTogether(block))
        for drill in session.drills[1:]:
            story.append(Spacer(1, 6))
            story.append(KeepTogether([_drill_box(drill, styles)]))
    return story


def _pre_round_routine(result: AnalysisResult, styles: dict) -> List:
    steps = result.practice_plan.pre_round_routine if result.practice_plan else []
    if not steps:
        return []
    rows = [
        [_p(str(i), styles["stat_label"]), _p(truncate(step, MAX_STEP_CHARS), styles["body"])]
        for i, step in enumerate(steps, start=1)
    ]
    table = Table(rows, colWidths=[24, CONTENT_WIDTH - 24])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (0, -1), LIGHT_GREEN),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("LINEBELOW", (0, 0), (-1, -1), 3, colors.white),
    ]))
    return [_p("PRE-ROUND ROUTINE", styles["section"]), table]


def _practice_round_focus(result: AnalysisResult, styles: dict) -> List:
    items = result.practice_plan.practice_round_focus if result.practice_plan else []
    if not items:
        return []
    story = [_p("PRACTICE ROUND FOCUS", styles["section"])]
    story.extend(_p(f"- {truncate(item, MAX_STEP_CHARS)}", styles["body"]) for item in items)
    return story


def _thirty_day_plan(result: AnalysisResult, styles: dict) -> List:
    if not result.thirty_day_plan:
        return []
    story = [_p("30-DAY PLAN", styles["section"])]
    for week in result.thirty_day_plan:
        label = f"Week {week.week}" if week.week is not None else "Week"
        if week.focus:
            label = f"{label}: {truncate(week.focus, MAX_STRATEGY_CHARS)}"
        block = [_p(label, styles["subheading"])]
        block.extend(_p(f"- {truncate(goal, MAX_STEP_CHARS)}", styles["body"]) for goal in week.goals)
        story.append(KeepTogether(block))
    return story


def render_practice_plan(
    analysis: AnalysisInput,
    golfer: Mapping[str, Any],
) -> bytes:
    """Render the practice plan (sessions, drills, routine) as PDF bytes."""
    result = _coerce_analysis(analysis)
    styles = _build_styles()

    story: List = []
    for section in (_weekly_schedule, _pre_round_routine, _practice_round_focus, _thirty_day_plan):
        story.extend(section(result, styles))

    miss = truncate(golfer.get("miss_pattern") or "your", MAX_MISS_CHARS)
    name = truncate(golfer.get("name") or "Golfer", MAX_NAME_CHARS)
    subtitle = f"{name}  |  Tailored for {miss} miss pattern"
    pdf = _build_document(story, _header_painter("PRACTICE PLAN", subtitle), with_footer=False)
    logger.debug("Rendered practice plan (%d bytes)", len(pdf))
    return pdf
