from __future__ import annotations

import typing as t

import gradebook.lib.cli as click
import gradebook.lib.json as json
from gradebook.core import di
from gradebook.grading import GradeLedger
from gradebook.model import BaseModel, GradeID


def echo_json(obj: BaseModel | t.Sequence[BaseModel] | None) -> None:
    if obj is None:
        click.echo("null")
    elif isinstance(obj, BaseModel):
        click.echo(json.dumps(obj.model_dump(mode="json"), indent=2))
    else:
        click.echo(json.dumps([o.model_dump(mode="json") for o in obj], indent=2))


@click.group("grade")
def grade(): ...


@grade.command()
@click.argument("learner_id")
@click.argument("course_id")
@click.argument("module_id")
@click.argument("score", type=click.ScoreType())
@click.option("-p", "--passing-score", type=int, default=None, help="defaults to grading.default_passing_score")
@click.option("--grader-id", required=True)
@click.option("--grader-name", required=True)
@click.option("--notes", default=None)
@di.inject
def enter(
    learner_id: str,
    course_id: str,
    module_id: str,
    score: float,
    passing_score: int | None,
    grader_id: str,
    grader_name: str,
    notes: str | None,
    ledger: GradeLedger = di.Provide["grading.ledger"],
):
    """Record a grade, superseding the pair's current grade if there is one."""
    record = ledger.enter_grade(learner_id, course_id, module_id, score, passing_score, grader_id, grader_name, notes)
    echo_json(record)


@grade.command()
@click.argument("grade_id", type=click.GradeIDType())
@click.argument("score", type=click.ScoreType())
@click.option("-r", "--reason", required=True)
@click.option("-p", "--passing-score", type=int, required=True)
@click.option("--grader-id", required=True)
@click.option("--grader-name", required=True)
@click.option("--notes", default=None)
@di.inject
def correct(
    grade_id: GradeID,
    score: float,
    reason: str,
    passing_score: int,
    grader_id: str,
    grader_name: str,
    notes: str | None,
    ledger: GradeLedger = di.Provide["grading.ledger"],
):
    """Replace the current grade GRADE_ID with a corrected one."""
    record = ledger.correct_grade(grade_id, score, passing_score, reason, grader_id, grader_name, notes)
    echo_json(record)


@grade.command()
@click.argument("learner_id")
@click.argument("module_id")
@di.inject
def history(learner_id: str, module_id: str, ledger: GradeLedger = di.Provide["grading.ledger"]):
    echo_json(ledger.get_grade_history(learner_id, module_id))


@grade.command()
@click.argument("learner_id")
@click.argument("module_id", required=False)
@di.inject
def current(learner_id: str, module_id: str | None, ledger: GradeLedger = di.Provide["grading.ledger"]):
    """Current grade for one module, or all of the learner's current grades."""
    if module_id is None:
        echo_json(ledger.get_user_grades(learner_id))
    else:
        echo_json(ledger.get_current_grade(learner_id, module_id))


@grade.command()
@click.argument("grade_id", type=click.GradeIDType())
@click.option("--actor-id", required=True)
@click.option("--actor-name", required=True)
@di.inject
def hide(grade_id: GradeID, actor_id: str, actor_name: str, ledger: GradeLedger = di.Provide["grading.ledger"]):
    echo_json(ledger.set_grade_visibility(grade_id, False, actor_id, actor_name))


@grade.command()
@click.argument("grade_id", type=click.GradeIDType())
@click.option("--actor-id", required=True)
@click.option("--actor-name", required=True)
@di.inject
def show(grade_id: GradeID, actor_id: str, actor_name: str, ledger: GradeLedger = di.Provide["grading.ledger"]):
    echo_json(ledger.set_grade_visibility(grade_id, True, actor_id, actor_name))


command = grade
