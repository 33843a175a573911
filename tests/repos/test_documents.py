from __future__ import annotations

from portal.repos.documents import (
    ProgressEntryDocument,
    parse_course,
    parse_progress_map,
    parse_quiz,
)


def test_empty_course_document_gets_defaults() -> None:
    course = parse_course("c1", {})
    assert course.title == "Untitled Module"
    assert course.description == ""
    assert course.category == ""
    assert course.status == "active"
    assert course.lessons == ()


def test_blank_title_is_treated_as_missing() -> None:
    assert parse_course("c1", {"title": ""}).title == "Untitled Module"
    assert parse_course("c1", {"title": None}).title == "Untitled Module"


def test_lessons_sorted_by_order_with_position_fallback() -> None:
    course = parse_course(
        "c1",
        {
            "lessons": [
                {"id": "b", "title": "B", "order": 2},
                {"id": "a", "title": "A", "order": 1},
                {"id": "z", "title": "Z"},  # no order: position 2
            ]
        },
    )
    assert [lesson.id for lesson in course.lessons] == ["a", "b", "z"]


def test_legacy_modules_key_is_accepted() -> None:
    course = parse_course("c1", {"modules": [{"title": "Only"}]})
    assert len(course.lessons) == 1
    assert course.lessons[0].id == "c1-lesson-1"
    assert course.lessons[0].content == ""


def test_numeric_lesson_ids_become_strings() -> None:
    course = parse_course("c1", {"lessons": [{"id": 7, "title": "Seven"}]})
    assert course.lessons[0].id == "7"


def test_image_url_accepts_camel_case() -> None:
    course = parse_course("c1", {"imageUrl": "/img.png"})
    assert course.image_url == "/img.png"


def test_quiz_document_defaults() -> None:
    quiz = parse_quiz(
        "q1",
        {
            "courseId": "c1",
            "courseTitle": "Course One",
            "questions": [
                {
                    "question": "A?",
                    "options": ["x", "y"],
                    "correctAnswer": "x",
                    "points": 30,
                },
                {"question": "B?", "options": ["x", "y"], "correctAnswer": "y"},
            ],
        },
    )
    assert quiz.id == "q1"
    assert quiz.course_id == "c1"
    assert quiz.title == "Course One"
    assert quiz.passing_score == 70
    assert [q.points for q in quiz.questions] == [30, 0]
    assert quiz.total_points == 30


def test_quiz_explicit_total_points_wins() -> None:
    quiz = parse_quiz(
        "q1",
        {
            "courseId": "c1",
            "totalPoints": 50,
            "questions": [
                {"question": "A?", "options": ["x"], "correctAnswer": "x", "points": 10}
            ],
        },
    )
    assert quiz.total_points == 50


def test_progress_map_parses_camel_case_entries() -> None:
    progress = parse_progress_map(
        {
            "c1": {"completedLessons": ["l1", "l2"], "progress": 40, "lastUpdated": 9},
            "c2": None,
        }
    )
    assert progress["c1"].completed_lessons == frozenset({"l1", "l2"})
    assert progress["c1"].progress == 40
    assert progress["c1"].last_updated == 9
    assert progress["c2"].completed_lessons == frozenset()


def test_progress_entry_dump_writes_camel_case() -> None:
    entry = parse_progress_map({"c1": {"completedLessons": ["b", "a"]}})["c1"]
    dumped = ProgressEntryDocument.dump(entry)
    assert sorted(dumped["completedLessons"]) == ["a", "b"]
    assert "lastUpdated" in dumped
