import logging

import pytest

from runalign.backbone import select_backbone
from runalign.config import load_engine_config
from runalign.errors import AlignmentError, ConfigError, ValidationError
from runalign.io_utils import read_json
from runalign.logging_utils import log_exception, run_with_error_handling
from runalign.models import AxisKey, Record


def test_missing_config_raises_config_error(tmp_path) -> None:
    missing = tmp_path / "missing.yaml"

    with pytest.raises(ConfigError) as exc:
        load_engine_config(missing)

    message = str(exc.value)
    assert "Config not found" in message
    assert str(missing) in message


def test_missing_request_raises_validation_error(tmp_path) -> None:
    with pytest.raises(ValidationError) as exc:
        read_json(tmp_path / "request.json")

    assert "request.json" in str(exc.value)


def test_bad_sample_value_names_the_field() -> None:
    with pytest.raises(ValidationError) as exc:
        Record({"FPS": {"nested": 1}})

    assert "FPS" in str(exc.value)


def test_empty_backbone_candidates_raise_alignment_error() -> None:
    with pytest.raises(AlignmentError):
        select_backbone([], AxisKey.DISTANCE)


def test_run_with_error_handling_logs_and_reraises(caplog) -> None:
    logger = logging.getLogger("runalign.test")
    logger.setLevel(logging.INFO)
    logger.propagate = True
    logger.handlers.clear()

    def _raise_config_error() -> None:
        raise ConfigError("Config not found: configs/missing.yaml")

    with caplog.at_level(logging.INFO, logger=logger.name):
        with pytest.raises(ConfigError):
            run_with_error_handling(_raise_config_error, logger=logger)

    assert any(
        "Config not found" in record.getMessage() for record in caplog.records
    )


def test_log_exception_emits_traceback_at_debug_level(caplog) -> None:
    logger = logging.getLogger("runalign.test.debug")
    logger.setLevel(logging.DEBUG)
    logger.propagate = True
    logger.handlers.clear()

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        message = log_exception(
            logger,
            ValidationError(
                "raw detail",
                user_message="Friendly message.",
                context={"run_id": "A"},
            ),
        )

    assert message == "Friendly message."
    assert any(record.exc_info for record in caplog.records)
    errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    debug = [r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG]
    assert errors == ["Friendly message."]
    assert "raw detail: {'run_id': 'A'}" in debug
