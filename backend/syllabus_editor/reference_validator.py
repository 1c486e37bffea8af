from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .gemini_client import GeminiClient
from .schemas import ReferenceValidation


logger = logging.getLogger(__name__)


EMPTY_REFERENCE_MESSAGE = "El campo de referencia no puede estar vacío."
NOT_CONFIGURED_MESSAGE = "El servicio de validación no está configurado."
VALIDATION_FAILED_MESSAGE = "Ocurrió un error al validar la referencia. Por favor, inténtelo de nuevo."


# OpenAPI subset understood by Gemini structured output
RESPONSE_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"isValid": {
			"type": "BOOLEAN",
			"description": "Indica si la referencia APA es válida o no.",
		},
		"feedback": {
			"type": "STRING",
			"description": (
				"Comentarios sobre la referencia APA, incluyendo errores y sugerencias de corrección. "
				"Debe estar en español."
			),
		},
	},
	"required": ["isValid", "feedback"],
}


def build_validation_prompt(reference_text: str) -> str:
	return (
		"Eres un experto en el estilo de citación APA (7.ª edición). Se te proporcionará una referencia y tu "
		"trabajo es determinar si es válida y devolver comentarios sobre ella, incluyendo errores y "
		"sugerencias para corregirla. Responde siempre en español, sin importar el idioma de la referencia.\n\n"
		"Devuelve SOLO un objeto JSON con las claves isValid (booleano) y feedback (texto).\n\n"
		f"Referencia a validar:\n\n{reference_text}"
	)


async def validate_reference(reference_text: str, *, client: Optional[GeminiClient] = None) -> ReferenceValidation:
	"""Judge APA-7 conformance of a single reference.

	Never raises: empty input, missing configuration and any failure of the model
	call come back as ``is_valid=False`` with a Spanish explanation. A client
	passed in by the caller is not closed here.
	"""
	if not (reference_text or "").strip():
		return ReferenceValidation(is_valid=False, feedback=EMPTY_REFERENCE_MESSAGE)

	owns_client = client is None
	if client is None:
		try:
			client = GeminiClient()
		except ValueError:
			logger.error("Reference validation requested but GEMINI_API_KEY is not configured")
			return ReferenceValidation(is_valid=False, feedback=NOT_CONFIGURED_MESSAGE)
	try:
		data = await client.generate_json(build_validation_prompt(reference_text), RESPONSE_SCHEMA)
		return ReferenceValidation.model_validate(data)
	except ValidationError:
		logger.exception("Model output does not match the reference validation schema")
		return ReferenceValidation(is_valid=False, feedback=VALIDATION_FAILED_MESSAGE)
	except Exception:
		logger.exception("Error validating APA reference")
		return ReferenceValidation(is_valid=False, feedback=VALIDATION_FAILED_MESSAGE)
	finally:
		if owns_client:
			await client.aclose()
