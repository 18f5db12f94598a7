import pytest

from runalign.errors import ValidationError
from runalign.models import AxisKey, Run
from runalign.protocol import error_payload, parse_request


def _payload(**overrides):
    payload = {
        "runs": [
            {
                "id": "run-1",
                "sessionId": "s1",
                "name": "Run 1",
                "performanceLogs": [
                    {"TIMESTAMP": 0.0, "SPLINE.DISTANCE": 0.0, "FPS": 60},
                    {"TIMESTAMP": 0.5, "SPLINE.DISTANCE": 4.0, "FPS": 59},
                ],
                "availableMetrics": [
                    {"key": "FPS", "label": "FPS", "isPercentage": False}
                ],
                "events": [{"Timestamp": 0.2, "EventName": "Start"}],
            }
        ],
        "xAxisKey": "SPLINE.DISTANCE",
        "renderedMetricKeys": ["FPS"],
        "downsampleThreshold": 100,
    }
    payload.update(overrides)
    return payload


def test_parse_request_builds_runs() -> None:
    request = parse_request(_payload())

    assert request.x_axis is AxisKey.DISTANCE
    assert request.downsample_threshold == 100
    assert isinstance(request.runs[0], Run)
    assert request.runs[0].samples[1]["FPS"] == 59
    assert request.runs[0].events[0].name == "Start"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("timestamp", AxisKey.TIMESTAMP),
        ("TIMESTAMP", AxisKey.TIMESTAMP),
        ("distance", AxisKey.DISTANCE),
    ],
)
def test_axis_aliases(value, expected) -> None:
    assert parse_request(_payload(xAxisKey=value)).x_axis is expected


def test_unknown_axis_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        parse_request(_payload(xAxisKey="altitude"))

    assert "xAxisKey" in str(exc.value)


@pytest.mark.parametrize("threshold", [0, -3, "many", True])
def test_threshold_must_be_positive_integer(threshold) -> None:
    with pytest.raises(ValidationError):
        parse_request(_payload(downsampleThreshold=threshold))


def test_missing_threshold_uses_default() -> None:
    payload = _payload()
    del payload["downsampleThreshold"]

    assert parse_request(payload, default_threshold=42).downsample_threshold == 42
    with pytest.raises(ValidationError):
        parse_request(payload)


def test_duplicate_run_ids_are_rejected() -> None:
    payload = _payload()
    payload["runs"] = payload["runs"] * 2

    with pytest.raises(ValidationError) as exc:
        parse_request(payload)

    assert "Duplicate run id" in str(exc.value)


def test_malformed_sample_value_is_rejected() -> None:
    payload = _payload()
    payload["runs"][0]["performanceLogs"][0]["FPS"] = [1, 2]

    with pytest.raises(ValidationError) as exc:
        parse_request(payload)

    assert "runs[0]" in str(exc.value)


def test_error_payload_shape() -> None:
    assert error_payload(ValidationError("bad", user_message="Bad request.")) == {
        "error": {"message": "Bad request."}
    }
    assert error_payload(RuntimeError("boom")) == {"error": {"message": "boom"}}


def test_missing_axis_uses_default() -> None:
    payload = _payload()
    del payload["xAxisKey"]

    request = parse_request(payload, default_axis=AxisKey.TIMESTAMP)

    assert request.x_axis is AxisKey.TIMESTAMP
    with pytest.raises(ValidationError) as exc:
        parse_request(payload)
    assert "xAxisKey is required" in str(exc.value)


def test_selection_reflects_request() -> None:
    selection = parse_request(_payload()).selection()

    assert selection.x_axis is AxisKey.DISTANCE
    assert selection.run_ids == ("run-1",)
    assert selection.metric_keys == ("FPS",)
