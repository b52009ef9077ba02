from courseportal.models.course import Course
from courseportal.schemas.course import Alternative, CourseModuleView, MediaItem, Question
from courseportal.services.content import build_course_content, next_module_id


def module(module_id, **fields):
    return CourseModuleView(id=module_id, course_id="c1", **fields)


def test_next_module_is_first_incomplete():
    modules = [module("m1"), module("m2"), module("m3")]

    assert next_module_id(modules, ["m1"]) == "m2"
    assert next_module_id(modules, ["m1", "m2", "m3"]) == "m1"
    assert next_module_id([], []) is None


def test_course_content_rendered_in_one_locale():
    course = Course(id="c1", title="Førstehjelp", description={"no": "Kurs", "en": "Course"}, image_url=None)
    modules = [
        module(
            "m1",
            title={"no": "Del 1", "en": "Part 1"},
            media={"en": [MediaItem(id="x", url="en.png")], "no": [MediaItem(id="y", url="no.png")]},
            questions=[Question(id="q1", alternatives=[Alternative(id="a", alt_text={"no": "Ja", "en": "Yes"})])],
        ),
        module("m2", title={"no": "Del 2"}),
    ]

    content = build_course_content(course, modules, ["m1"], requested_locale="en")

    assert content.locale == "en"
    assert content.title == "Førstehjelp"
    assert content.description == "Course"
    assert [item.title for item in content.modules] == ["Part 1", "Del 2"]
    assert content.modules[0].media[0].url == "en.png"
    assert content.modules[0].questions[0].alternatives[0].text == "Yes"
    assert content.modules[0].completed is True
    assert content.next_module_id == "m2"
    assert content.completed is False
