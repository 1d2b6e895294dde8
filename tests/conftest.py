"""Shared fixtures: an instructor directory and a factory for student submissions."""

from pathlib import Path
from textwrap import dedent

import pytest

from autograde.models import AssignmentLayout

TURTLE_SOURCE = dedent('''\
    import math


    class SimpleTurtle:
        def __init__(self):
            self.x = 0.0
            self.y = 0.0
            self.heading = 0.0
            self.pen_color = "black"
            self.path = []

        def forward(self, units):
            radians = math.radians(self.heading)
            new_x = self.x + units * math.cos(radians)
            new_y = self.y + units * math.sin(radians)
            self.path.append({
                "start": {"x": self.x, "y": self.y},
                "end": {"x": new_x, "y": new_y},
                "color": self.pen_color,
            })
            self.x, self.y = new_x, new_y

        def turn(self, degrees):
            self.heading = (self.heading + degrees) % 360

        def color(self, name):
            self.pen_color = name

        def get_path(self):
            return list(self.path)
    ''')

REFERENCE_SOURCE = dedent('''\
    def draw_square(turtle, size):
        for _ in range(4):
            turtle.forward(size)
            turtle.turn(90)


    def double_loop(turtle, size):
        for _ in range(2):
            for _ in range(3):
                turtle.forward(size)
                turtle.turn(120)
            turtle.turn(180)


    def draw_personal_art(turtle):
        turtle.color("red")
        draw_square(turtle, 50)
    ''')

INSTRUCTOR_TESTS_SOURCE = dedent('''\
    import src.turtlesoup as soup
    from src.turtle import SimpleTurtle


    def test_draw_square_draws_four_sides():
        turtle = SimpleTurtle()
        soup.draw_square(turtle, 10)
        assert len(turtle.get_path()) == 4


    def test_double_loop_draws_two_triangles():
        turtle = SimpleTurtle()
        soup.double_loop(turtle, 10)
        assert len(turtle.get_path()) == 6
    ''')

STUDENT_TESTS_SOURCE = dedent('''\
    from ..src.turtlesoup import draw_square
    from ..src.turtle import SimpleTurtle


    def test_draw_square_returns_home():
        turtle = SimpleTurtle()
        draw_square(turtle, 25)
        end = turtle.get_path()[-1]["end"]
        assert abs(end["x"]) < 1e-6 and abs(end["y"]) < 1e-6
    ''')

NO_TESTS_SOURCE = dedent('''\
    from src.turtlesoup import draw_square
    ''')

MISSING_DOUBLE_LOOP_SOURCE = dedent('''\
    def draw_square(turtle, size):
        for _ in range(4):
            turtle.forward(size)
            turtle.turn(90)


    def draw_personal_art(turtle):
        turtle.color("blue")
        turtle.forward(30)
    ''')

CRASHING_ART_SOURCE = REFERENCE_SOURCE + dedent('''\


    def draw_personal_art(turtle):
        raise RuntimeError("my art is broken")
    ''')


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def layout() -> AssignmentLayout:
    return AssignmentLayout.for_language("python")


@pytest.fixture
def instructor_dir(tmp_path: Path) -> Path:
    root = tmp_path / "instructor"
    write(root / "src" / "turtle.py", TURTLE_SOURCE)
    write(root / "src" / "turtlesoup.py", REFERENCE_SOURCE)
    write(root / "test" / "test_turtlesoup.py", INSTRUCTOR_TESTS_SOURCE)
    return root


@pytest.fixture
def submissions_dir(tmp_path: Path) -> Path:
    root = tmp_path / "submissions"
    root.mkdir()
    return root


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    return tmp_path / "sandboxes"


@pytest.fixture
def make_submission(submissions_dir: Path):
    """Create a submission folder; pass None to leave a file out."""

    def _make(student_id: str, implementation: str | None = REFERENCE_SOURCE,
              tests: str | None = STUDENT_TESTS_SOURCE) -> Path:
        root = submissions_dir / student_id
        root.mkdir(parents=True)
        if implementation is not None:
            write(root / "src" / "turtlesoup.py", implementation)
        if tests is not None:
            write(root / "test" / "test_turtlesoup.py", tests)
        return root

    return _make
