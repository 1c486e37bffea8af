"""Immutable editing helpers for an in-memory syllabus.

Every helper returns a new Syllabus; untouched units, weeks and criteria are
shared by reference with the input. Field edits on a unit or criterion are
validated, so an invalid change raises pydantic's ValidationError.
"""
from __future__ import annotations
from typing import Any, List, Optional, Sequence, TypeVar

from .schemas import (
	EvaluationCriterion,
	ExportView,
	LearningUnit,
	Methodology,
	ReferenceValidation,
	Syllabus,
	Week,
)


T = TypeVar("T")

MIDTERM_WEEK = 9
FINAL_WEEK = 18
EXAM_WEEK_CONTENTS = {
	MIDTERM_WEEK: "Examen Parcial: evaluación de los conocimientos adquiridos.",
	FINAL_WEEK: "Examen Final: evaluación de los conocimientos adquiridos.",
}


def _check_index(seq: Sequence[Any], index: int) -> None:
	if not 0 <= index < len(seq):
		raise IndexError(f"index {index} out of range for sequence of length {len(seq)}")


def replace_at(seq: Sequence[T], index: int, item: T) -> List[T]:
	_check_index(seq, index)
	return [item if i == index else x for i, x in enumerate(seq)]


def insert_at(seq: Sequence[T], index: int, item: T) -> List[T]:
	if not 0 <= index <= len(seq):
		raise IndexError(f"index {index} out of range for insertion into length {len(seq)}")
	return [*seq[:index], item, *seq[index:]]


def remove_at(seq: Sequence[T], index: int) -> List[T]:
	_check_index(seq, index)
	return [x for i, x in enumerate(seq) if i != index]


def update_fields(syllabus: Syllabus, **changes: Any) -> Syllabus:
	return syllabus.model_copy(update=changes)


# Learning units

def add_unit(syllabus: Syllabus, unit: Optional[LearningUnit] = None) -> Syllabus:
	units = syllabus.learning_units
	unit = unit or LearningUnit(denomination=f"Unidad de Aprendizaje {len(units) + 1}")
	return update_fields(syllabus, learning_units=insert_at(units, len(units), unit))


def update_unit(syllabus: Syllabus, unit_index: int, **changes: Any) -> Syllabus:
	"""Change fields of one unit. A new reference text drops the cached validation."""
	units = syllabus.learning_units
	_check_index(units, unit_index)
	unit = units[unit_index]
	if "apa_reference" in changes and changes["apa_reference"] != unit.apa_reference:
		changes.setdefault("validation_result", None)
	# model_validate, not model_copy: the date range check has to run
	new_unit = LearningUnit.model_validate({**dict(unit), **changes})
	return update_fields(syllabus, learning_units=replace_at(units, unit_index, new_unit))


def remove_unit(syllabus: Syllabus, unit_index: int) -> Syllabus:
	return update_fields(syllabus, learning_units=remove_at(syllabus.learning_units, unit_index))


def set_unit_reference(syllabus: Syllabus, unit_index: int, reference_text: str) -> Syllabus:
	return update_unit(syllabus, unit_index, apa_reference=reference_text)


def set_unit_validation(syllabus: Syllabus, unit_index: int, result: Optional[ReferenceValidation]) -> Syllabus:
	return update_unit(syllabus, unit_index, validation_result=result)


# Weeks

def total_weeks(syllabus: Syllabus) -> int:
	return sum(len(u.weeks) for u in syllabus.learning_units)


def week_number(syllabus: Syllabus, unit_index: int, week_index: int) -> int:
	"""1-based position of a week counted across all units."""
	units = syllabus.learning_units
	_check_index(units, unit_index)
	_check_index(units[unit_index].weeks, week_index)
	return sum(len(u.weeks) for u in units[:unit_index]) + week_index + 1


def add_week(syllabus: Syllabus, unit_index: int) -> Syllabus:
	units = syllabus.learning_units
	_check_index(units, unit_index)
	unit = units[unit_index]
	number = total_weeks(syllabus) + 1
	week = Week(specific_contents=EXAM_WEEK_CONTENTS.get(number, ""))
	new_unit = unit.model_copy(update={"weeks": insert_at(unit.weeks, len(unit.weeks), week)})
	return update_fields(syllabus, learning_units=replace_at(units, unit_index, new_unit))


def update_week(syllabus: Syllabus, unit_index: int, week_index: int, specific_contents: str) -> Syllabus:
	units = syllabus.learning_units
	_check_index(units, unit_index)
	unit = units[unit_index]
	_check_index(unit.weeks, week_index)
	week = unit.weeks[week_index].model_copy(update={"specific_contents": specific_contents})
	new_unit = unit.model_copy(update={"weeks": replace_at(unit.weeks, week_index, week)})
	return update_fields(syllabus, learning_units=replace_at(units, unit_index, new_unit))


def remove_week(syllabus: Syllabus, unit_index: int, week_index: int) -> Syllabus:
	units = syllabus.learning_units
	_check_index(units, unit_index)
	unit = units[unit_index]
	new_unit = unit.model_copy(update={"weeks": remove_at(unit.weeks, week_index)})
	return update_fields(syllabus, learning_units=replace_at(units, unit_index, new_unit))


# Evaluation criteria

def add_criterion(syllabus: Syllabus, criterion: Optional[EvaluationCriterion] = None) -> Syllabus:
	criteria = syllabus.evaluation_criteria
	return update_fields(syllabus, evaluation_criteria=insert_at(criteria, len(criteria), criterion or EvaluationCriterion()))


def update_criterion(syllabus: Syllabus, index: int, **changes: Any) -> Syllabus:
	criteria = syllabus.evaluation_criteria
	_check_index(criteria, index)
	criterion = EvaluationCriterion.model_validate({**dict(criteria[index]), **changes})
	return update_fields(syllabus, evaluation_criteria=replace_at(criteria, index, criterion))


def remove_criterion(syllabus: Syllabus, index: int) -> Syllabus:
	return update_fields(syllabus, evaluation_criteria=remove_at(syllabus.evaluation_criteria, index))


def weights_total(syllabus: Syllabus) -> float:
	return sum(c.weight for c in syllabus.evaluation_criteria)


def weights_warning(syllabus: Syllabus) -> Optional[str]:
	# Soft rule: shown to the user, never blocks saving
	total = weights_total(syllabus)
	if abs(total - 100) < 1e-9:
		return None
	return f"La suma de los pesos de evaluación es {total:g}%, debería ser 100%."


# Export

_REQUIRED_TEXT_FIELDS = (
	("course_name", "Nombre del curso"),
	("course_code", "Clave"),
	("credits", "Créditos"),
	("theory_hours", "Horas teóricas"),
	("practice_hours", "Horas prácticas"),
	("instructor_name", "Elaboró"),
	("graduate_competency", "Competencia del Perfil de Egreso"),
	("course_competency", "Competencia del Curso"),
	("prerequisite", "Competencias Previas Requeridas"),
	("summary", "Resumen del Curso"),
)


def export_missing_fields(syllabus: Syllabus) -> List[str]:
	"""Labels of what still has to be filled in before printing."""
	missing = [label for field, label in _REQUIRED_TEXT_FIELDS if not (getattr(syllabus, field) or "").strip()]
	if not syllabus.evaluation_criteria:
		missing.append("Criterios de Evaluación")
	if not syllabus.learning_units:
		missing.append("Unidades de Aprendizaje")
		return missing
	for unit in syllabus.learning_units:
		incomplete = (
			not unit.denomination.strip()
			or not unit.weeks
			or any(not w.specific_contents.strip() for w in unit.weeks)
			or (unit.methodology == Methodology.OTHER and not unit.custom_methodology.strip())
			or not unit.apa_reference.strip()
		)
		if incomplete:
			missing.append("Todas las Unidades de Aprendizaje y sus semanas deben estar completas")
			break
	return missing


def build_export_view(syllabus: Syllabus) -> ExportView:
	missing = export_missing_fields(syllabus)
	return ExportView(
		syllabus=syllabus,
		missing_fields=missing,
		ready=not missing,
		weights_total=weights_total(syllabus),
		weights_warning=weights_warning(syllabus),
	)
