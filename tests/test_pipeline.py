import copy
import json

from runalign.config import EngineConfig
from runalign.models import AxisKey
from runalign.pipeline import process_chart_data, run_chart_request


def test_example_runs_produce_unreduced_chart(make_run) -> None:
    run_a = make_run("A", [0, 10, 20, 30], {"FPS": [60, 58, 55, 50]})
    run_b = make_run("B", [0, 10], {"CPU": [40, 45]})

    result = process_chart_data([run_a, run_b], AxisKey.DISTANCE, ["FPS", "CPU"], 10)

    assert result.backbone_id == "A"
    assert result.labels == [0.0, 10.0, 20.0, 30.0]
    assert len(result.full_merged_frames) == 4
    assert [point.y for point in result.datasets["A:FPS"]] == [60.0, 58.0, 55.0, 50.0]
    assert [point.y for point in result.datasets["B:CPU"]] == [40.0, 45.0, None, None]
    assert [point.y for point in result.datasets["B:FPS"]] == [None] * 4
    assert set(result.datasets) == {"A:FPS", "A:CPU", "B:FPS", "B:CPU"}


def test_large_backbone_is_downsampled_but_merged_frames_are_full(make_run) -> None:
    xs = [float(idx) for idx in range(5000)]
    run = make_run("A", xs, {"FPS": [60 + (idx % 17) for idx in range(5000)]})

    result = process_chart_data([run], AxisKey.DISTANCE, ["FPS"], 2000)

    assert len(result.labels) == 2000
    assert result.labels[0] == 0.0
    assert result.labels[-1] == 4999.0
    assert len(result.full_merged_frames) == 5000
    assert len(result.datasets["A:FPS"]) == 2000


def test_empty_inputs_give_empty_result(make_run) -> None:
    run = make_run("A", [0, 1], {"FPS": [1, 2]})

    for result in (
        process_chart_data([], AxisKey.DISTANCE, ["FPS"], 100),
        process_chart_data([run], AxisKey.DISTANCE, [], 100),
    ):
        assert result.is_empty
        assert result.to_payload() == {
            "labels": [],
            "datasets": {},
            "fullMergedFrames": [],
            "eventMarkers": [],
            "burstIntervals": [],
        }


def test_inputs_are_not_mutated(make_run) -> None:
    run_a = make_run("A", [30, 0, 20, 10], {"FPS": [1, 2, 3, 4]})
    run_b = make_run("B", [10, 0], {"CPU": [5, 6]})
    before = copy.deepcopy([run_a.to_dict(), run_b.to_dict()])

    process_chart_data([run_a, run_b], AxisKey.DISTANCE, ["FPS"], 3)

    assert [run_a.to_dict(), run_b.to_dict()] == before


def test_unsorted_input_is_sorted_per_axis(make_run) -> None:
    run = make_run(
        "A",
        [0, 10, 20],
        {"FPS": [1, 2, 3]},
        timestamps=[2.0, 0.0, 1.0],
    )

    by_distance = process_chart_data([run], AxisKey.DISTANCE, ["FPS"], 10)
    by_time = process_chart_data([run], AxisKey.TIMESTAMP, ["FPS"], 10)

    assert by_distance.labels == [0.0, 10.0, 20.0]
    assert [point.y for point in by_distance.datasets["A:FPS"]] == [1.0, 2.0, 3.0]
    assert by_time.labels == [0.0, 1.0, 2.0]
    assert [point.y for point in by_time.datasets["A:FPS"]] == [2.0, 3.0, 1.0]


def test_annotations_are_derived_from_full_frames(make_run) -> None:
    run = make_run(
        "A",
        [0, 1, 2, 3, 4, 5],
        {"FPS": [1, 2, 3, 4, 5, 6]},
        timestamps=[0.0, 0.1, 0.2, 0.3, 0.4, 0.5],
        burst=[False, True, True, True, False, False],
        events=[{"Timestamp": 0.31, "EventName": "Stutter"}],
    )

    result = process_chart_data([run], AxisKey.DISTANCE, ["FPS"], 3)

    assert len(result.labels) == 3
    assert [interval.to_list() for interval in result.burst_intervals] == [[1.0, 3.0]]
    assert [(marker.name, marker.x) for marker in result.event_markers] == [
        ("Stutter", 3.0)
    ]


def test_run_chart_request_returns_wire_payload(make_run) -> None:
    run = make_run(
        "A",
        [0, 10],
        {"FPS": [60, 61]},
        timestamps=[0.0, 1.0],
        burst=[True, True],
    )
    payload = {
        "runs": [run.to_dict()],
        "xAxisKey": "distance",
        "renderedMetricKeys": ["FPS"],
        "downsampleThreshold": 500,
    }

    response = run_chart_request(payload)

    assert response["labels"] == [0.0, 10.0]
    assert response["datasets"]["A:FPS"] == [
        {"x": 0.0, "y": 60.0},
        {"x": 10.0, "y": 61.0},
    ]
    assert response["fullMergedFrames"][1]["A:FPS"] == 61
    assert response["fullMergedFrames"][1]["SPLINE.DISTANCE"] == 10
    assert response["burstIntervals"] == [(0.0, 10.0)]
    assert response["eventMarkers"] == []


def test_request_without_axis_follows_config(make_run) -> None:
    run = make_run("A", [0, 10], {"FPS": [60, 61]}, timestamps=[5.0, 6.0])
    payload = {"runs": [run.to_dict()], "renderedMetricKeys": ["FPS"]}

    by_distance = run_chart_request(payload)
    by_time = run_chart_request(
        payload, config=EngineConfig(x_axis="TIMESTAMP", downsample_threshold=50)
    )

    assert by_distance["labels"] == [0.0, 10.0]
    assert by_time["labels"] == [5.0, 6.0]


def test_payload_is_strict_json_with_nan_backbone_x(make_run) -> None:
    run = make_run("A", [0, 10, None], {"FPS": [60, 61, 62]})

    payload = process_chart_data([run], AxisKey.DISTANCE, ["FPS"], 10).to_payload()

    text = json.dumps(payload, allow_nan=False)
    assert json.loads(text)["labels"] == [0.0, 10.0, None]
    assert payload["datasets"]["A:FPS"][2] == {"x": None, "y": 62.0}
