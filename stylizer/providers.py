"""AI provider interface and implementations: OpenAI stylization, Replicate training and generation."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from stylizer.config import DEFAULT_TRAINER, DEFAULT_TRAINER_VERSION, resolve_api_key
from stylizer.models import ArtStyle, SessionStatus, TrainingUpdate
from stylizer.styles import style_messages

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_S = 120
_PERCENT_RE = re.compile(r"(\d{1,3}(?:\.\d+)?)%")


class TrainingError(RuntimeError):
    """The training provider rejected or lost a training run."""


def download_image(url: str, http: httpx.Client | None = None) -> bytes:
    """Fetch an image URL and return its bytes."""
    if http is not None:
        resp = http.get(url)
        resp.raise_for_status()
        return resp.content
    with httpx.Client(timeout=DOWNLOAD_TIMEOUT_S, follow_redirects=True) as client:
        resp = client.get(url)
        resp.raise_for_status()
    return resp.content


class ImageProvider(ABC):
    """Base interface for hosted image generators."""

    provider_name: str = "base"

    @abstractmethod
    def generate_url(self, prompt: str) -> str:
        ...

    def generate(self, prompt: str) -> bytes:
        return download_image(self.generate_url(prompt))


class OpenAIStylizer(ImageProvider):
    """Writes a style prompt with a chat model, then renders it with DALL-E."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        chat_model: str = "gpt-4",
        image_model: str = "dall-e-3",
        client: Any = None,
    ) -> None:
        self.api_key = resolve_api_key(api_key, "OPENAI_API_KEY")
        self.chat_model = chat_model
        self.image_model = image_model
        self._client = client
        if not self.api_key and client is None:
            raise ValueError("OPENAI_API_KEY is not set")

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def write_prompt(self, style: str | ArtStyle) -> str:
        messages = style_messages(style)
        logger.info("Generating prompt with %s...", self.chat_model)

        response = self._get_client().chat.completions.create(
            model=self.chat_model,
            messages=messages,
            temperature=0.7,
            max_tokens=500,
        )

        prompt = (response.choices[0].message.content or "").strip()
        if not prompt:
            raise RuntimeError("Prompt generation returned no text")
        logger.info("Generated prompt: %s", prompt)
        return prompt

    def generate_url(self, prompt: str) -> str:
        logger.info("Generating image with %s...", self.image_model)

        response = self._get_client().images.generate(
            model=self.image_model,
            prompt=prompt,
            n=1,
            size="1024x1024",
        )

        if not response.data or not response.data[0].url:
            raise RuntimeError("Image generation returned no image")
        return response.data[0].url

    def stylize(self, style: str | ArtStyle) -> tuple[str, str]:
        """Return ``(prompt, image_url)`` for a fresh image in ``style``."""
        prompt = self.write_prompt(style)
        return prompt, self.generate_url(prompt)


class ReplicateGenerator(ImageProvider):
    """Runs a (trained) Replicate model version and returns the first output URL."""

    provider_name = "replicate"

    def __init__(
        self,
        model: str,
        api_token: str | None = None,
        client: Any = None,
        num_inference_steps: int = 28,
    ) -> None:
        self.api_token = resolve_api_key(api_token, "REPLICATE_API_TOKEN")
        self.model = model
        self.num_inference_steps = num_inference_steps
        self._client = client
        if not self.api_token and client is None:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

    def _get_client(self):
        if self._client is None:
            import replicate
            self._client = replicate.Client(api_token=self.api_token)
        return self._client

    def generate_url(self, prompt: str) -> str:
        logger.info("Generating image via Replicate model=%s", self.model)

        output = self._get_client().run(
            self.model,
            input={
                "prompt": prompt,
                "num_outputs": 1,
                "output_format": "jpg",
                "num_inference_steps": self.num_inference_steps,
            },
        )

        image_url = output[0] if isinstance(output, list) else output
        if not image_url:
            raise RuntimeError("Replicate returned no output")
        return str(image_url)


def parse_progress(logs: str | None) -> float:
    """Return the last ``NN%`` figure found in training logs, clamped to 0-100."""
    if not logs:
        return 0.0
    matches = _PERCENT_RE.findall(logs)
    if not matches:
        return 0.0
    return max(0.0, min(100.0, float(matches[-1])))


class ReplicateTrainer:
    """Starts and inspects LoRA trainings on Replicate."""

    def __init__(
        self,
        destination: str,
        api_token: str | None = None,
        trainer: str = DEFAULT_TRAINER,
        trainer_version: str = DEFAULT_TRAINER_VERSION,
        steps: int = 1000,
        client: Any = None,
    ) -> None:
        self.api_token = resolve_api_key(api_token, "REPLICATE_API_TOKEN")
        self.destination = destination
        self.trainer = trainer
        self.trainer_version = trainer_version
        self.steps = steps
        self._client = client
        if not self.api_token and client is None:
            raise ValueError("REPLICATE_API_TOKEN is not set")
        if not destination:
            raise ValueError("REPLICATE_DESTINATION is not set")

    def _get_client(self):
        if self._client is None:
            import replicate
            self._client = replicate.Client(api_token=self.api_token)
        return self._client

    def start(self, training_data_url: str, trigger_word: str) -> str:
        """Create a training run and return its provider id."""
        logger.info("Starting training for %s via %s", trigger_word, self.trainer)
        try:
            training = self._get_client().trainings.create(
                version=f"{self.trainer}:{self.trainer_version}",
                input={
                    "input_images": training_data_url,
                    "trigger_word": trigger_word,
                    "steps": self.steps,
                    "autocaption": True,
                },
                destination=self.destination,
            )
        except Exception as e:
            raise TrainingError(f"Failed to start training: {e}") from e

        logger.info("Training %s created for %s", training.id, trigger_word)
        return str(training.id)

    def fetch(self, training_id: str) -> TrainingUpdate:
        try:
            training = self._get_client().trainings.get(training_id)
        except Exception as e:
            raise TrainingError(f"Failed to fetch training {training_id}: {e}") from e

        status = SessionStatus.from_provider(training.status)
        progress = parse_progress(getattr(training, "logs", None))
        model_version = None
        error = None

        if status is SessionStatus.COMPLETED:
            progress = 100.0
            output = training.output or {}
            model_version = output.get("version") if isinstance(output, dict) else None
            if not model_version:
                status = SessionStatus.FAILED
                error = "Training finished without a model version"
        elif status is SessionStatus.FAILED:
            error = str(training.error or training.status)

        return TrainingUpdate(status=status, progress=progress, model_version=model_version, error=error)


def get_provider(name: str, **kwargs) -> ImageProvider:
    """Factory function to get a provider by name."""
    providers: dict[str, type[ImageProvider]] = {
        "openai": OpenAIStylizer,
        "replicate": ReplicateGenerator,
    }
    if name not in providers:
        raise ValueError(f"Unknown provider: {name}. Available: {list(providers.keys())}")
    return providers[name](**kwargs)
