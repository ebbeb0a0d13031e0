from datetime import date

from analytics.course_layout import extract_course_layout, layout_from_course_data
from models import HoleScore, LayoutSource, Round


def _hole(number, par=None, yardage=None, score=None):
    return HoleScore(hole_number=number, par=par, yardage=yardage, score=score)


def test_no_hole_detail_means_no_layout():
    assert extract_course_layout([]) is None
    assert extract_course_layout([Round(total_score=85, course_name="Muni")]) is None


def test_course_filter_is_case_insensitive():
    rounds = [
        Round(course_name="Oak Hill", hole_scores=[_hole(1, 4, 380, 5)]),
        Round(course_name="Muni", hole_scores=[_hole(1, 3, 150, 3)]),
    ]
    layout = extract_course_layout(rounds, "  oak hill ")
    assert layout.holes[0].par == 4
    assert layout.source == LayoutSource.SCORE_HISTORY
    assert not layout.is_authoritative

    assert extract_course_layout(rounds, "Pebble Beach") is None


def test_most_recent_non_null_values_win():
    older = Round(
        course_name="Oak Hill",
        date=date(2024, 4, 1),
        hole_scores=[_hole(1, 4, 380, 5), _hole(2, 5, 510, 6)],
    )
    newer = Round(
        course_name="Oak Hill",
        date=date(2024, 6, 1),
        hole_scores=[_hole(1, 4, 395, 4), _hole(2, None, None, 5)],
    )
    layout = extract_course_layout([newer, older])

    hole_1, hole_2 = layout.holes
    assert hole_1.yardage == 395
    assert hole_2.par == 5
    assert hole_2.yardage == 510
    assert hole_1.average_score == 4.5
    assert hole_1.rounds_played == 2
    assert layout.total_par == 9
    assert layout.total_yardage == 905
    assert layout.holes_with_par == 2


def test_layout_from_course_data():
    holes = [
        {"number": 1, "par": 4, "yardage": 402},
        {"hole_number": "2", "par": "3", "length": 171},
        {"number": 25, "par": 4},
        {"number": None, "par": 4},
    ]
    layout = layout_from_course_data("Oak Hill", holes)

    assert layout.is_authoritative
    assert [(h.hole, h.par, h.yardage) for h in layout.holes] == [(1, 4, 402), (2, 3, 171)]
    assert layout.total_par == 7
    assert layout.total_yardage == 573

    assert layout_from_course_data("Oak Hill", []) is None
    assert layout_from_course_data("Oak Hill", None) is None


def test_scores_without_pars_give_no_layout():
    rounds = [
        Round(
            course_name="Oak Hill",
            hole_scores=[_hole(1, score=5), _hole(2, score=4), _hole(3, score=6)],
        )
    ]
    assert extract_course_layout(rounds, "Oak Hill") is None
    assert extract_course_layout(rounds) is None
    assert layout_from_course_data("Oak Hill", [{"number": 1, "yardage": 380}]) is None


def test_unfiltered_layout_uses_most_played_course_only():
    muni = Round(course_name="Muni", date=date(2024, 3, 1), hole_scores=[_hole(1, 3, 150, 3)])
    links = [
        Round(course_name="Links", date=date(2024, 4, 1), hole_scores=[_hole(1, 4, 400, 5), _hole(2, 4, 400, 5)]),
        Round(course_name="links", date=date(2024, 5, 1), hole_scores=[_hole(1, 4, 410, 4)]),
    ]
    layout = extract_course_layout([muni] + links)

    assert layout.course_name == "links"
    assert [(h.hole, h.par, h.yardage, h.average_score) for h in layout.holes] == [
        (1, 4, 410, 4.5),
        (2, 4, 400, 5.0),
    ]


def test_unfiltered_layout_tie_goes_to_most_recent_course():
    muni = Round(course_name="Muni", date=date(2024, 6, 1), hole_scores=[_hole(1, 3, 150, 3)])
    links = Round(course_name="Links", date=date(2024, 4, 1), hole_scores=[_hole(1, 4, 400, 5)])
    layout = extract_course_layout([muni, links])

    assert layout.course_name == "Muni"
    assert [(h.hole, h.par) for h in layout.holes] == [(1, 3)]
