"""
Tests for the agent-facing command-line tool.
"""
import json

import pytest
from fastapi.testclient import TestClient

from app.agent.photo_edit_tool import EXIT_INVALID, EXIT_JOB_FAILED, EXIT_OK, main
from app.api.image_jobs import get_image_job_service
from app.main import create_app
from app.services.exceptions import SubmitFailedError
from app.services.image_jobs import ImageJobService

from conftest import FakeProvider


def run_tool(capsys, argv, settings, provider):
    code = main(argv, service=ImageJobService(settings=settings, provider=provider))
    return code, json.loads(capsys.readouterr().out)


def test_submit_prints_handle(capsys, settings, provider):
    code, output = run_tool(
        capsys,
        ["submit", "--prompt", "declutter", "--image-url", "https://x/1.jpg",
         "--image-url", "https://x/2.jpg", "--num-images", "9"],
        settings,
        provider,
    )

    assert code == EXIT_OK
    assert output == {"requestId": "r1", "model": "fal-ai/gemini-25-flash-image/edit"}
    payload = provider.calls[0][2]
    assert payload["image_urls"] == ["https://x/1.jpg", "https://x/2.jpg"]
    assert payload["num_images"] == 4


def test_wait_completed(capsys, settings):
    provider = FakeProvider(
        statuses=[{"status": "COMPLETED"}],
        result_payload={"image": {"url": "https://out/a.png", "width": 512, "height": 512}},
    )

    code, output = run_tool(
        capsys,
        ["wait", "--prompt", "declutter", "--image-url", "https://x/1.jpg"],
        settings,
        provider,
    )

    assert code == EXIT_OK
    assert output["status"] == "completed"
    assert output["images"] == [{
        "url": "https://out/a.png",
        "contentType": None,
        "fileName": None,
        "fileSizeBytes": None,
        "width": 512,
        "height": 512,
    }]


def test_wait_timed_out_is_success(capsys, settings, provider):
    code, output = run_tool(
        capsys,
        ["wait", "--prompt", "declutter", "--image-url", "https://x/1.jpg", "--max-wait-ms", "0"],
        settings,
        provider,
    )

    assert code == EXIT_OK
    assert output["status"] == "timed_out"
    assert output["requestId"] == "r1"
    assert "message" in output


def test_wait_failed_job(capsys, settings):
    provider = FakeProvider(statuses=[{"status": "FAILED", "error": "content policy"}])

    code, output = run_tool(
        capsys,
        ["wait", "--prompt", "declutter", "--image-url", "https://x/1.jpg"],
        settings,
        provider,
    )

    assert code == EXIT_JOB_FAILED
    assert output["status"] == "failed"
    assert output["error"] == "content policy"


def test_status_pending(capsys, settings):
    provider = FakeProvider(statuses=[{"status": "IN_QUEUE", "queue_position": 2}])

    code, output = run_tool(capsys, ["status", "r1"], settings, provider)

    assert code == EXIT_OK
    assert output == {
        "requestId": "r1",
        "model": "fal-ai/gemini-25-flash-image/edit",
        "status": "queued",
        "queuePosition": 2,
    }


def test_status_cancelled(capsys, settings):
    provider = FakeProvider(statuses=[{"status": "CANCELLED"}])

    code, output = run_tool(capsys, ["status", "r1"], settings, provider)

    assert code == EXIT_JOB_FAILED
    assert output["status"] == "cancelled"
    assert "images" not in output


def test_invalid_model_exit_code(capsys, settings, provider):
    code, output = run_tool(
        capsys,
        ["submit", "--prompt", "p", "--image-url", "https://x/1.jpg", "--model", "fal-ai/unknown"],
        settings,
        provider,
    )

    assert code == EXIT_INVALID
    assert output["error"]["code"] == "INVALID_MODEL"
    assert "allowedModels" in output["error"]
    assert provider.calls == []


def test_missing_images_exit_code(capsys, settings, provider):
    code, output = run_tool(capsys, ["wait", "--prompt", "p"], settings, provider)

    assert code == EXIT_INVALID
    assert output["error"]["message"] == "image_url (or image_urls) is required"
    assert provider.calls == []


def test_missing_credential_exit_code(capsys, unconfigured_settings, provider):
    code, output = run_tool(
        capsys,
        ["submit", "--prompt", "p", "--image-url", "https://x/1.jpg"],
        unconfigured_settings,
        provider,
    )

    assert code == EXIT_INVALID
    assert output["error"]["code"] == "PROVIDER_NOT_CONFIGURED"


def test_transport_failure_exit_code(capsys, settings):
    provider = FakeProvider(submit_error=SubmitFailedError("Provider unreachable: ConnectError"))

    code, output = run_tool(
        capsys,
        ["submit", "--prompt", "p", "--image-url", "https://x/1.jpg"],
        settings,
        provider,
    )

    assert code == EXIT_JOB_FAILED
    assert output["error"]["code"] == "SUBMIT_FAILED"


def test_missing_prompt_is_usage_error(settings, provider):
    with pytest.raises(SystemExit) as exc_info:
        main(["wait", "--image-url", "https://x/1.jpg"], service=ImageJobService(settings=settings, provider=provider))

    assert exc_info.value.code == 2


@pytest.mark.parametrize("statuses, result_payload", [
    ([{"status": "COMPLETED"}], {"images": [{"url": "https://out/a.png", "width": 512}, {"url": "https://out/b.png"}]}),
    ([{"status": "FAILED", "error": "content policy"}], None),
    ([{"status": "CANCELLED"}], None),
    ([{"status": "IN_PROGRESS"}], None),
])
def test_status_document_matches_http(capsys, settings, statuses, result_payload):
    _, cli_output = run_tool(
        capsys, ["status", "r1"], settings, FakeProvider(statuses=list(statuses), result_payload=result_payload)
    )

    app = create_app()
    http_provider = FakeProvider(statuses=list(statuses), result_payload=result_payload)
    app.dependency_overrides[get_image_job_service] = lambda: ImageJobService(
        settings=settings, provider=http_provider
    )
    http_output = TestClient(app).get("/v1/image-jobs/r1").json()

    assert cli_output == http_output


def test_wait_document_has_http_fields(capsys, settings):
    provider = FakeProvider(submit_error=SubmitFailedError("Provider request failed with status 500"))

    code, output = run_tool(
        capsys,
        ["wait", "--prompt", "p", "--image-url", "https://x/1.jpg"],
        settings,
        provider,
    )

    assert code == EXIT_JOB_FAILED
    assert output == {
        "status": "failed",
        "requestId": None,
        "model": "fal-ai/gemini-25-flash-image/edit",
        "images": [],
        "error": "Provider request failed with status 500",
        "message": None,
        "attempts": 0,
        "elapsedMs": 0,
    }
