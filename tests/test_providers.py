from types import SimpleNamespace

import httpx
import pytest

from stylizer.models import SessionStatus
from stylizer.providers import (
    OpenAIStylizer,
    ReplicateGenerator,
    ReplicateTrainer,
    TrainingError,
    download_image,
    get_provider,
    parse_progress,
)


class FakeOpenAI:
    def __init__(self, prompt="a dreamy meadow", url="https://images.test/out.png"):
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat))
        self.images = SimpleNamespace(generate=self._images)
        self.prompt = prompt
        self.url = url

    def _chat(self, **kwargs):
        self.calls.append(("chat", kwargs))
        message = SimpleNamespace(content=self.prompt)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def _images(self, **kwargs):
        self.calls.append(("images", kwargs))
        return SimpleNamespace(data=[SimpleNamespace(url=self.url)])


class FakeTrainings:
    def __init__(self, training=None, fail=False):
        self.training = training
        self.fail = fail
        self.created = []

    def create(self, **kwargs):
        if self.fail:
            raise RuntimeError("destination does not exist")
        self.created.append(kwargs)
        return SimpleNamespace(id="tr_123")

    def get(self, training_id):
        return self.training


def test_openai_stylize_writes_prompt_then_renders():
    client = FakeOpenAI()
    stylizer = OpenAIStylizer(client=client)

    prompt, url = stylizer.stylize("ghibli")

    assert (prompt, url) == ("a dreamy meadow", "https://images.test/out.png")
    chat, images = client.calls
    assert chat[1]["model"] == "gpt-4"
    assert chat[1]["temperature"] == 0.7
    assert chat[1]["max_tokens"] == 500
    assert "Studio Ghibli" in chat[1]["messages"][0]["content"]
    assert images[1] == {"model": "dall-e-3", "prompt": "a dreamy meadow", "n": 1, "size": "1024x1024"}


def test_openai_stylize_rejects_unknown_style_before_calling():
    client = FakeOpenAI()
    with pytest.raises(ValueError, match="Invalid style"):
        OpenAIStylizer(client=client).stylize("cubism")
    assert client.calls == []


def test_openai_empty_prompt_is_an_error():
    with pytest.raises(RuntimeError):
        OpenAIStylizer(client=FakeOpenAI(prompt="  ")).write_prompt("pixar")


def test_replicate_generator_takes_first_output():
    runs = []

    def run(model, input):
        runs.append((model, input))
        return ["https://replicate.test/out-0.jpg", "https://replicate.test/out-1.jpg"]

    generator = ReplicateGenerator(model="me/portraits:v1", client=SimpleNamespace(run=run))

    assert generator.generate_url("A photo of PERSON_AAAAA") == "https://replicate.test/out-0.jpg"
    assert runs[0][0] == "me/portraits:v1"
    assert runs[0][1]["prompt"] == "A photo of PERSON_AAAAA"


@pytest.mark.parametrize(
    "logs, expected",
    [
        (None, 0.0),
        ("loading model\n", 0.0),
        ("flux_train:  12%|#   | 120/1000\nflux_train:  47%|#### | 470/1000", 47.0),
        ("weird 250% line", 100.0),
    ],
)
def test_parse_progress(logs, expected):
    assert parse_progress(logs) == expected


def test_trainer_start_sends_archive_and_trigger_word():
    trainings = FakeTrainings()
    trainer = ReplicateTrainer(
        destination="me/portraits",
        trainer="ostris/flux-dev-lora-trainer",
        trainer_version="abc",
        client=SimpleNamespace(trainings=trainings),
    )

    assert trainer.start("https://storage.test/a.zip", "PERSON_AAAAA") == "tr_123"

    created = trainings.created[0]
    assert created["version"] == "ostris/flux-dev-lora-trainer:abc"
    assert created["destination"] == "me/portraits"
    assert created["input"]["input_images"] == "https://storage.test/a.zip"
    assert created["input"]["trigger_word"] == "PERSON_AAAAA"


def test_trainer_start_wraps_provider_errors():
    trainer = ReplicateTrainer(destination="me/portraits", client=SimpleNamespace(trainings=FakeTrainings(fail=True)))
    with pytest.raises(TrainingError, match="Failed to start training"):
        trainer.start("https://storage.test/a.zip", "PERSON_AAAAA")


def _trainer_returning(training):
    return ReplicateTrainer(destination="me/portraits", client=SimpleNamespace(trainings=FakeTrainings(training)))


def test_trainer_fetch_processing_reports_log_progress():
    training = SimpleNamespace(status="processing", logs="step 30%", output=None, error=None)
    update = _trainer_returning(training).fetch("tr_123")
    assert update.status is SessionStatus.PROCESSING
    assert update.progress == 30.0


def test_trainer_fetch_succeeded_returns_version():
    training = SimpleNamespace(
        status="succeeded", logs="90%", output={"version": "me/portraits:v2", "weights": "w"}, error=None
    )
    update = _trainer_returning(training).fetch("tr_123")
    assert update.status is SessionStatus.COMPLETED
    assert update.progress == 100.0
    assert update.model_version == "me/portraits:v2"


def test_trainer_fetch_succeeded_without_version_is_failure():
    training = SimpleNamespace(status="succeeded", logs="", output={}, error=None)
    update = _trainer_returning(training).fetch("tr_123")
    assert update.status is SessionStatus.FAILED
    assert update.error


def test_trainer_fetch_failed_carries_error():
    training = SimpleNamespace(status="failed", logs="", output=None, error="CUDA out of memory")
    update = _trainer_returning(training).fetch("tr_123")
    assert update.status is SessionStatus.FAILED
    assert update.error == "CUDA out of memory"


def test_download_image_uses_given_client():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"jpeg-bytes"))
    with httpx.Client(transport=transport) as http:
        assert download_image("https://images.test/x.jpg", http=http) == b"jpeg-bytes"


def test_download_image_raises_on_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    with httpx.Client(transport=transport) as http:
        with pytest.raises(httpx.HTTPStatusError):
            download_image("https://images.test/missing.jpg", http=http)


def test_get_provider_factory(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert isinstance(get_provider("openai"), OpenAIStylizer)
    with pytest.raises(ValueError, match="Unknown provider"):
        get_provider("midjourney")
