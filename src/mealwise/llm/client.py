"""
Mealwise - Generation Client.

Wraps OpenAI with Instructor for validated recipe output. One
GenerativeService is built at startup and handed to the orchestrator;
there is no module-level client.

Generation is a single attempt: output that fails validation is a
MalformedGenerationError, anything else from the API is a GenerationError.
"""

from dataclasses import dataclass
from typing import TypeVar

import instructor
from instructor.exceptions import InstructorRetryException
from openai import APIError, AsyncOpenAI
from pydantic import BaseModel, ValidationError

from mealwise.config import EngineSettings
from mealwise.errors import ConfigurationError, GenerationError, MalformedGenerationError
from mealwise.llm.prompt_logger import log_prompt
from mealwise.llm.prompts import SYSTEM_PROMPT

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class GenerationImage:
    """Inline image sent alongside a prompt (base64 payload)."""

    data: str
    mime_type: str = "image/jpeg"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class GenerativeService:
    """Structured generation over an Instructor-wrapped AsyncOpenAI client."""

    def __init__(
        self,
        client: instructor.AsyncInstructor,
        *,
        model: str = "gpt-4.1-mini",
        temperature: float = 0.7,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "GenerativeService":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        client = instructor.from_openai(AsyncOpenAI(api_key=settings.openai_api_key))
        return cls(
            client,
            model=settings.generation_model,
            temperature=settings.generation_temperature,
        )

    def _messages(self, prompt: str, image: GenerationImage | None) -> list[dict]:
        if image is None:
            user_content: str | list[dict] = prompt
        else:
            user_content = [
                {"type": "image_url", "image_url": {"url": image.data_url}},
                {"type": "text", "text": prompt},
            ]
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    async def generate_structured(
        self,
        prompt: str,
        response_model: type[T],
        *,
        image: GenerationImage | None = None,
        purpose: str = "generation",
    ) -> T:
        """
        Generate and validate a response_model instance.

        Args:
            prompt: User prompt text
            response_model: Pydantic model the output must satisfy
            image: Optional inline image
            purpose: Label for prompt logs

        Raises:
            MalformedGenerationError: output did not validate
            GenerationError: the API call failed
        """
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(prompt, image),
                response_model=response_model,
                temperature=self.temperature,
                max_retries=1,
            )
        except InstructorRetryException as e:
            self._log(purpose, prompt, response_model, image, error=str(e))
            # Instructor wraps transport and API failures too
            if isinstance(e.__cause__, APIError):
                raise GenerationError(f"Generation call failed: {e.__cause__}") from e
            raise MalformedGenerationError(f"Malformed {response_model.__name__} output: {e}") from e
        except ValidationError as e:
            self._log(purpose, prompt, response_model, image, error=str(e))
            raise MalformedGenerationError(f"Malformed {response_model.__name__} output: {e}") from e
        except Exception as e:
            self._log(purpose, prompt, response_model, image, error=str(e))
            raise GenerationError(f"Generation call failed: {e}") from e

        self._log(purpose, prompt, response_model, image, response=response)
        return response

    def _log(self, purpose, prompt, response_model, image, *, response=None, error=None) -> None:
        log_prompt(
            purpose=purpose,
            model=self.model,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
            response_model=response_model.__name__,
            response=response,
            error=error,
            has_image=image is not None,
        )
