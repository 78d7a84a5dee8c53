"""
Tests for scheduler configuration collection and request building.
"""
from types import SimpleNamespace

import pytest

from schedclient.collect import (
    FRC_ENDPOINT,
    PLAYOFF_ENDPOINT,
    SWISS_ENDPOINT,
    ConfigCollector,
    ConfigError,
    advanced_frc_config,
    allowed_scheduler_types,
    build_request,
)
from schedclient.models import FrcConfig, FrcManual, FrcPreset, PlayoffConfig, SwissConfig


class TestStageCompatibility:
    """Scheduler types permitted per stage type."""

    def test_swiss_stage_allows_swiss_and_frc(self):
        assert allowed_scheduler_types("SWISS") == {"swiss", "frc"}

    def test_playoff_stage_allows_only_playoff(self):
        assert allowed_scheduler_types("PLAYOFF") == {"playoff"}

    def test_final_stage_allows_nothing(self):
        assert allowed_scheduler_types("FINAL") == frozenset()

    def test_default_scheduler_follows_stage(self):
        assert ConfigCollector("SWISS").scheduler_type == "swiss"
        assert ConfigCollector("PLAYOFF").scheduler_type == "playoff"

    @pytest.mark.parametrize("stage_type", ["SWISS", "PLAYOFF", "FINAL"])
    @pytest.mark.parametrize("scheduler", ["swiss", "frc", "playoff", "manual"])
    def test_never_builds_request_for_excluded_scheduler(self, stage_type, scheduler):
        """Whatever is selected, the request matches an allowed scheduler or fails."""
        c = ConfigCollector(stage_type)
        c.select_scheduler(scheduler)
        if c.is_allowed():
            endpoint, _ = c.request("s1")
            assert c.scheduler_type in allowed_scheduler_types(stage_type)
        else:
            with pytest.raises(ConfigError):
                c.request("s1")

    def test_playoff_stage_rejects_swiss(self):
        c = ConfigCollector("PLAYOFF")
        assert c.select_scheduler("swiss") is False
        assert c.scheduler_type == "playoff"
        endpoint, _ = c.request("s1")
        assert endpoint == PLAYOFF_ENDPOINT

    def test_switching_keeps_teams_per_alliance(self):
        c = ConfigCollector("SWISS")
        c.set_teams_per_alliance(3)
        assert c.select_scheduler("frc") is True
        assert isinstance(c.config, FrcConfig)
        assert c.config.teams_per_alliance == 3


class TestSetters:
    """Field updates validate ranges and variant membership."""

    def test_round_number_zero_is_first_round(self):
        c = ConfigCollector("SWISS")
        c.set_round_number(0)
        assert c.config.current_round_number == 0

    def test_negative_round_rejected_and_config_kept(self):
        c = ConfigCollector("SWISS")
        c.set_round_number(2)
        with pytest.raises(ConfigError):
            c.set_round_number(-1)
        assert c.config.current_round_number == 2

    def test_teams_per_alliance_range(self):
        c = ConfigCollector("SWISS")
        with pytest.raises(ConfigError):
            c.set_teams_per_alliance(4)
        with pytest.raises(ConfigError):
            c.set_teams_per_alliance(0)

    def test_playoff_rounds_enumerated(self):
        c = ConfigCollector("PLAYOFF")
        c.set_number_of_rounds(5)
        assert c.config.bracket_size == 32
        with pytest.raises(ConfigError):
            c.set_number_of_rounds(6)

    def test_field_of_other_variant_rejected(self):
        c = ConfigCollector("PLAYOFF")
        with pytest.raises(ConfigError):
            c.set_round_number(1)
        with pytest.raises(ConfigError):
            c.choose_preset("frcRegional")

    def test_frc_manual_ranges(self):
        c = ConfigCollector("SWISS")
        c.select_scheduler("frc")
        with pytest.raises(ConfigError):
            c.set_frc_manual(rounds=21)
        with pytest.raises(ConfigError):
            c.set_frc_manual(min_match_separation=11)
        with pytest.raises(ConfigError):
            c.set_frc_manual(quality_level="extreme")
        assert c.config.params == FrcManual()

    def test_unknown_preset_rejected(self):
        c = ConfigCollector("SWISS")
        c.select_scheduler("frc")
        with pytest.raises(ConfigError):
            c.choose_preset("worlds")


class TestFrcPresets:
    """Preset and manual FRC parameters are mutually exclusive."""

    def _frc(self):
        c = ConfigCollector("SWISS")
        c.select_scheduler("frc")
        return c

    def test_preset_suppresses_manual_fields(self):
        c = self._frc()
        c.set_frc_manual(rounds=9, quality_level="high")
        c.choose_preset("frcRegional")
        endpoint, body = c.request("stage-1")
        assert endpoint == FRC_ENDPOINT
        assert body["preset"] == "frcRegional"
        for key in ("rounds", "qualityLevel", "minMatchSeparation"):
            assert key not in body

    def test_custom_configuration_restores_manual_fields(self):
        c = self._frc()
        c.set_frc_manual(rounds=9, quality_level="high", min_match_separation=3)
        c.choose_preset("fast")
        c.choose_preset("")
        _, body = c.request("stage-1")
        assert "preset" not in body
        assert body["rounds"] == 9
        assert body["qualityLevel"] == "high"
        assert body["minMatchSeparation"] == 3

    def test_manual_edits_while_preset_active_stay_hidden(self):
        c = self._frc()
        c.choose_preset("frcSmall")
        c.set_frc_manual(rounds=4)
        assert isinstance(c.config.params, FrcPreset)
        c.choose_preset("")
        assert c.config.params.rounds == 4


class TestAdvancedPenalties:
    """Repeat penalties come from a fixed table keyed by alliance size."""

    @pytest.mark.parametrize(
        "size,partner,opponent",
        [(1, 0.0, 3.0), (2, 4.0, 2.0), (3, 3.0, 2.0)],
    )
    def test_penalty_table(self, size, partner, opponent):
        penalties = advanced_frc_config(size)["penalties"]
        assert penalties["partnerRepeat"] == partner
        assert penalties["opponentRepeat"] == opponent
        assert penalties["matchSeparationViolation"] == 15.0

    def test_station_balancing_block(self):
        assert advanced_frc_config(2)["stationBalancing"] == {
            "enabled": True,
            "strategy": "position",
            "perfectBalancing": True,
        }

    def test_config_only_sent_when_enabled(self):
        _, body = build_request("s", FrcConfig(teams_per_alliance=1))
        assert "config" not in body
        _, body = build_request("s", FrcConfig(teams_per_alliance=1, advanced=True))
        assert body["config"]["penalties"]["partnerRepeat"] == 0.0


class TestBuildRequest:
    """One endpoint and body shape per scheduler variant."""

    def test_swiss_body(self):
        endpoint, body = build_request("stage-1", SwissConfig(current_round_number=0, teams_per_alliance=2))
        assert endpoint == SWISS_ENDPOINT
        assert body == {"stageId": "stage-1", "currentRoundNumber": 0, "teamsPerAlliance": 2}

    def test_playoff_body(self):
        endpoint, body = build_request("stage-2", PlayoffConfig(number_of_rounds=4, teams_per_alliance=3))
        assert endpoint == PLAYOFF_ENDPOINT
        assert body == {"stageId": "stage-2", "numberOfRounds": 4, "teamsPerAlliance": 3}

    def test_frc_manual_body(self):
        endpoint, body = build_request("stage-3", FrcConfig())
        assert endpoint == FRC_ENDPOINT
        assert body == {
            "stageId": "stage-3",
            "teamsPerAlliance": 2,
            "rounds": 6,
            "minMatchSeparation": 1,
            "qualityLevel": "medium",
        }

    def test_unknown_config_rejected(self):
        with pytest.raises(ConfigError):
            build_request("s", object())

    def test_lookalike_config_rejected(self):
        """Only the three config models are accepted, whatever fields an object has."""
        lookalike = SimpleNamespace(scheduler_type="manual", teams_per_alliance=2)
        with pytest.raises(ConfigError):
            build_request("s", lookalike)

    def test_unknown_frc_params_rejected(self):
        config = FrcConfig.model_construct(teams_per_alliance=2, params=object(), advanced=False)
        with pytest.raises(ConfigError):
            build_request("s", config)
