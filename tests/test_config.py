"""Tests for QuartzConfig."""

import pytest

from rxquartz.config import DEFAULT_PORT, QuartzConfig


def test_defaults():
    config = QuartzConfig()
    assert config.host == ""
    assert config.port == DEFAULT_PORT == 23
    assert config.max_destinations == 16
    assert config.max_sources == 16
    assert config.poll_interval == 5.0
    assert config.poll_levels == "V"
    assert config.verbose is False
    assert not config.is_configured


def test_endpoint():
    config = QuartzConfig(host="10.0.0.5", port=2323)
    assert config.endpoint == ("10.0.0.5", 2323)
    assert config.is_configured


def test_blank_host_is_not_configured():
    assert not QuartzConfig(host="   ").is_configured


@pytest.mark.parametrize(
    "kwargs",
    [
        {"port": 0},
        {"port": 70000},
        {"max_destinations": 0},
        {"max_sources": 5000},
        {"poll_interval": 0.5},
        {"poll_interval": 61},
        {"poll_levels": ""},
        {"poll_levels": "VX"},
        {"connect_timeout": 0},
    ],
)
def test_out_of_range_values_raise(kwargs):
    with pytest.raises(ValueError):
        QuartzConfig(**kwargs)


def test_from_mapping_coerces_form_values():
    config = QuartzConfig.from_mapping(
        {
            "host": " 192.168.1.20 ",
            "port": "2323",
            "max_destinations": "64",
            "max_sources": 32,
            "pollInterval": "10",
            "verbose": "true",
            "poll_levels": "va",
            "label": "ignored",
        }
    )
    assert config == QuartzConfig(
        host="192.168.1.20",
        port=2323,
        max_destinations=64,
        max_sources=32,
        poll_interval=10.0,
        verbose=True,
        poll_levels="VA",
    )


def test_from_mapping_camel_case_keys():
    config = QuartzConfig.from_mapping(
        {
            "host": "router",
            "maxDestinations": 8,
            "maxSources": 4,
            "pollIntervalSeconds": 2,
            "verboseLogging": False,
        }
    )
    assert config.max_destinations == 8
    assert config.max_sources == 4
    assert config.poll_interval == 2.0
    assert config.verbose is False


def test_from_mapping_skips_none():
    assert QuartzConfig.from_mapping({"host": None, "port": None}) == QuartzConfig()


def test_from_mapping_validates():
    with pytest.raises(ValueError):
        QuartzConfig.from_mapping({"host": "r", "max_destinations": "9999"})
