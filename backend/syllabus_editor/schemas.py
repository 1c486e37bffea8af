"""Wire and in-memory shapes of a syllabus document.

Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations
import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Methodology(str, Enum):
	PROJECT_BASED = "ABP"
	PROBLEM_BASED = "ABPr"
	CASE_STUDY = "EC"
	OTHER = "Otro"


METHODOLOGY_LABELS = {
	Methodology.PROJECT_BASED: "Aprendizaje Basado en Proyectos",
	Methodology.PROBLEM_BASED: "Aprendizaje Basado en Problemas",
	Methodology.CASE_STUDY: "Estudio de Caso",
	Methodology.OTHER: "Otro",
}


class ReferenceValidationRequest(CamelModel):
	reference_text: str = ""


class ReferenceValidation(CamelModel):
	is_valid: bool
	feedback: str


class Week(CamelModel):
	specific_contents: str = ""


class LearningUnit(CamelModel):
	denomination: str = ""
	start_date: Optional[dt.date] = None
	end_date: Optional[dt.date] = None
	student_capacity: str = ""
	weeks: List[Week] = Field(default_factory=list)
	methodology: Methodology = Methodology.PROJECT_BASED
	custom_methodology: str = ""
	apa_reference: str = ""
	validation_result: Optional[ReferenceValidation] = None

	@model_validator(mode="after")
	def _check_date_range(self) -> "LearningUnit":
		if self.start_date and self.end_date and self.start_date > self.end_date:
			raise ValueError("startDate must not be after endDate")
		return self

	def methodology_label(self) -> str:
		if self.methodology == Methodology.OTHER:
			return self.custom_methodology
		return METHODOLOGY_LABELS[self.methodology]


class EvaluationCriterion(CamelModel):
	evaluation: str = ""
	weight: float = Field(default=0, ge=0)
	instrument: str = ""
	date: Optional[dt.date] = None


class Syllabus(CamelModel):
	id: Optional[str] = None
	owner_id: Optional[str] = None
	course_name: str = ""
	faculty: str = ""
	career: str = ""
	term: str = ""
	credits: str = ""
	theory_hours: str = ""
	practice_hours: str = ""
	independent_hours: str = ""
	course_code: str = ""
	course_type: str = ""
	prerequisite: str = ""
	instructor_name: str = ""
	instructor_email: str = ""
	graduate_competency: str = ""
	course_competency: str = ""
	summary: str = ""
	learning_units: List[LearningUnit] = Field(default_factory=list)
	evaluation_criteria: List[EvaluationCriterion] = Field(default_factory=list)
	# Inline data URL, e.g. "data:image/png;base64,..."
	signature_preview: Optional[str] = None
	creation_date: Optional[dt.datetime] = None
	update_date: Optional[dt.datetime] = None


class UserData(CamelModel):
	uid: str
	email: Optional[str] = None
	display_name: Optional[str] = None


# Result envelopes: every user-facing operation returns one of these instead of raising.

class ActionResult(CamelModel):
	success: bool
	error: Optional[str] = None


class SyllabusResult(CamelModel):
	syllabus: Optional[Syllabus] = None
	error: Optional[str] = None


class SyllabusListResult(CamelModel):
	syllabi: List[Syllabus] = Field(default_factory=list)
	error: Optional[str] = None


class UserListResult(CamelModel):
	users: List[UserData] = Field(default_factory=list)
	error: Optional[str] = None


class ExportView(CamelModel):
	syllabus: Syllabus
	missing_fields: List[str] = Field(default_factory=list)
	ready: bool
	weights_total: float
	weights_warning: Optional[str] = None
