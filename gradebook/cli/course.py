from __future__ import annotations

import pathlib

import yaml

import gradebook.lib.cli as click
from gradebook.core import di, GradebookContainer
from gradebook.grading import CourseGradeAggregator, StaticModuleCatalog

from .grade import echo_json


@click.group("course")
@click.option(
    "-m",
    "--modules",
    "modules_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
    help="YAML file mapping course ids to their modules",
)
@click.pass_obj
def course(ct: GradebookContainer, modules_path: pathlib.Path):
    data = yaml.safe_load(modules_path.read_text(encoding="utf8")) or {}
    ct.grading.catalog.override(StaticModuleCatalog.from_dict(data))


@course.command()
@click.argument("learner_id")
@click.argument("course_id")
@click.option("--save", is_flag=True, default=False, help="persist as the official course grade")
@click.option("--actor-id", default=None)
@click.option("--actor-name", default=None)
@di.inject
def calculate(
    learner_id: str,
    course_id: str,
    save: bool,
    actor_id: str | None,
    actor_name: str | None,
    aggregator: CourseGradeAggregator = di.Provide["grading.aggregator"],
):
    """Preview a course grade, or with --save record it officially."""
    if not save:
        echo_json(aggregator.calculate_course_grade(learner_id, course_id))
        return
    if not (actor_id and actor_name):
        raise click.UsageError("--save requires --actor-id and --actor-name")
    echo_json(aggregator.calculate_and_save_course_grade(learner_id, course_id, actor_id, actor_name))


@course.command()
@click.argument("learner_id")
@click.argument("course_id")
@click.option("-f", "--force-recalculate", is_flag=True, default=False)
@di.inject
def show(
    learner_id: str,
    course_id: str,
    force_recalculate: bool,
    aggregator: CourseGradeAggregator = di.Provide["grading.aggregator"],
):
    """Saved course grade, falling back to a fresh preview."""
    echo_json(aggregator.get_course_grade(learner_id, course_id, force_recalculate=force_recalculate))


@course.command()
@click.argument("course_id")
@di.inject
def roster(course_id: str, aggregator: CourseGradeAggregator = di.Provide["grading.aggregator"]):
    """Saved course grades for a course, highest first."""
    echo_json(aggregator.get_course_grades_for_course(course_id))


command = course
