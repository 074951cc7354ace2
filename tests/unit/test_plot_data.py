"""Unit tests for chart data shaping, alarm status and variable catalogs"""
from datetime import datetime, timezone

import pytest

from iotview.api.schemas import SensorConfig
from iotview.charts.alarms import StatusSource, ThresholdBreach, resolve_status, threshold_status
from iotview.charts.collection import ChartSpec
from iotview.charts.plot_data import build_plot_data, chart_payload, resolve_y_range, series_options
from iotview.charts.sensor_types import CHART_COLORS, category_info, detect_type, normalize_type
from iotview.charts.variables import ALL_CATEGORY, VariableCatalog, variable_from_key
from iotview.charts.zoom import ZoomCoordinator
from iotview.models import AxisOverride, ChartVariable, ZoomRange


def _epoch(minutes):
    return datetime(2024, 3, 15, 12, minutes, tzinfo=timezone.utc).timestamp()


class TestBuildPlotData:
    """Test alignment of several variables on one time axis"""

    def test_gaps_are_none(self, make_record):
        records = [
            make_record(key="TMP_1", value=10, minutes=0, record_id=1),
            make_record(key="TMP_1", value=20, minutes=1, record_id=2),
            make_record(key="HUM_1", value=55, minutes=1, record_id=3),
        ]

        plot = build_plot_data(records, ["TMP_1", "HUM_1"])

        assert plot.timestamps == [_epoch(0), _epoch(1)]
        assert plot.series(0) == [10.0, 20.0]
        assert plot.series(1) == [None, 55.0]
        assert plot.time_range == (_epoch(0), _epoch(1))

    def test_sorted_by_time(self, make_record):
        records = [
            make_record(value=3, minutes=2, record_id=1),
            make_record(value=1, minutes=0, record_id=2),
        ]

        plot = build_plot_data(records, ["TMP_1"])

        assert plot.series(0) == [1.0, 3.0]

    def test_duplicate_timestamp_last_wins(self, make_record):
        records = [
            make_record(value=1, minutes=0, record_id=1),
            make_record(value=2, minutes=0, record_id=2),
        ]

        plot = build_plot_data(records, ["TMP_1"])

        assert plot.series(0) == [2.0]

    def test_non_numeric_values_dropped(self, make_record):
        records = [
            make_record(key="STS_1", value="OPEN", minutes=0, record_id=1),
            make_record(key="TMP_1", value=4, minutes=1, record_id=2),
        ]

        plot = build_plot_data(records, ["TMP_1", "STS_1"])

        assert plot.timestamps == [_epoch(1)]
        assert plot.series(1) == [None]

    def test_nothing_to_plot(self, make_record):
        assert build_plot_data([], ["TMP_1"]) is None
        assert build_plot_data([make_record(key="HUM_1")], ["TMP_1"]) is None
        assert build_plot_data([make_record()], []) is None


class TestSeriesOptions:
    """Test per-variable display options and y range"""

    def _chart(self, *variables, overrides=None):
        return ChartSpec(
            id=1,
            variables=list(variables),
            zoom=ZoomCoordinator(),
            axis_overrides=overrides or {},
        )

    def test_default_colors_and_alarm_lines(self):
        chart = self._chart(
            ChartVariable(key="TMP_1", alarm_enabled=True, max_alarm=30),
            ChartVariable(key="HUM_1", color="#123456"),
        )

        options = series_options(chart)

        assert options[0]["color"] == CHART_COLORS[0]
        assert options[1]["color"] == "#123456"
        assert options[0]["alarm_enabled"] is True
        assert options[0]["y_min"] is None

    def test_override_hides_thresholds_and_sets_range(self):
        chart = self._chart(
            ChartVariable(key="TMP_1", alarm_enabled=True, max_alarm=30),
            overrides={"TMP_1": AxisOverride(custom_range=True, min=0, max=50, show_alarm_thresholds=False)},
        )

        options = series_options(chart)

        assert options[0]["alarm_enabled"] is False
        assert (options[0]["y_min"], options[0]["y_max"]) == (0, 50)

    def test_bounds_ignored_without_custom_range(self):
        chart = self._chart(
            ChartVariable(key="TMP_1"),
            overrides={"TMP_1": AxisOverride(custom_range=False, min=0, max=50)},
        )

        assert series_options(chart)[0]["y_min"] is None

    def test_resolve_y_range(self):
        assert resolve_y_range([{"y_min": None, "y_max": None}], 10, 20) == (9.0, 21.0)
        assert resolve_y_range([{"y_min": 0, "y_max": None}], 10, 20) == (0, 21.0)
        assert resolve_y_range([{"y_min": 0, "y_max": 100}], 10, 20) == (0, 100)
        assert resolve_y_range([{"y_min": None, "y_max": None}], 5, 5) == pytest.approx((4.9, 5.1))

    def test_chart_payload(self, make_record):
        zoom = ZoomCoordinator(ZoomRange(min=1000, max=2000))
        chart = ChartSpec(
            id=4,
            variables=[ChartVariable(key="TMP_1")],
            zoom=zoom,
            data=[make_record(value=10, minutes=0, record_id=1), make_record(value=20, minutes=1, record_id=2)],
        )

        payload = chart_payload(chart)

        assert payload["id"] == 4
        assert payload["data"] == [[_epoch(0), _epoch(1)], [10.0, 20.0]]
        assert payload["zoom_range"] == {"min": 1000.0, "max": 2000.0}
        assert payload["y_range"] == [9.0, 21.0]

    def test_chart_payload_without_data(self):
        chart = self._chart(ChartVariable(key="TMP_1"))

        payload = chart_payload(chart)

        assert payload["data"] is None
        assert payload["y_range"] is None


class TestAlarmStatus:
    """Server status wins; thresholds are the fallback"""

    VARIABLE = ChartVariable(key="TMP_1", alarm_enabled=True, min_alarm=5, max_alarm=30)

    def test_server_status_wins(self, make_record):
        status = resolve_status(make_record(value=50, status="warning"), self.VARIABLE)

        assert status.status == "warning"
        assert status.source == StatusSource.SERVER
        assert status.breach is None

    @pytest.mark.parametrize("server_status", [None, "unknown", "bogus"])
    def test_threshold_fallback(self, make_record, server_status):
        status = resolve_status(make_record(value=35, status=server_status), self.VARIABLE)

        assert status.status == "critical"
        assert status.source == StatusSource.THRESHOLD
        assert status.breach == ThresholdBreach.HIGH
        assert status.is_alarm

    def test_within_thresholds(self, make_record):
        status = resolve_status(make_record(value=20), self.VARIABLE)

        assert status.status == "normal"
        assert not status.is_alarm

    def test_threshold_status(self):
        assert threshold_status(1, self.VARIABLE) == ThresholdBreach.LOW
        assert threshold_status("31.5", self.VARIABLE) == ThresholdBreach.HIGH
        assert threshold_status("OPEN", self.VARIABLE) is None
        assert threshold_status(100, ChartVariable(key="TMP_1", max_alarm=30)) is None
        assert threshold_status(100, None) is None


class TestVariableCatalog:
    """Test variable discovery and category grouping"""

    def test_build_from_sensor_configs(self):
        catalog = VariableCatalog.build([
            SensorConfig(log_key="room_t", label="Room", sensor_type="tmp", unit="°C",
                         alarm_enabled=True, max_alarm=30),
            SensorConfig(log_key="VLT_main"),
        ], log_keys=["ignored"])

        room = catalog.get("room_t")
        assert (room.type, room.category, room.label, room.unit) == ("TMP", "environmental", "Room", "°C")
        assert room.has_alarm
        assert catalog.get("VLT_main").category == "electrical"
        assert catalog.get("ignored") is None

    def test_build_from_log_keys(self):
        catalog = VariableCatalog.build(None, ["TMP_1", "HUM_1", "TMP_1", "mystery"])

        assert len(catalog) == 3
        assert catalog.get("mystery").category == "general"
        assert catalog.counts() == {ALL_CATEGORY: 3, "environmental": 2, "general": 1}

    def test_filter_and_visible_categories(self):
        catalog = VariableCatalog([
            variable_from_key("CUR_1"),
            variable_from_key("TMP_1"),
            variable_from_key("BAT_1"),
        ])

        assert [v.key for v in catalog.filter("electrical")] == ["CUR_1"]
        assert len(catalog.filter(ALL_CATEGORY)) == 3
        assert catalog.filter("air_quality") == []
        assert catalog.visible_categories() == ["environmental", "electrical", "status"]


class TestSensorTypes:
    def test_detect_type(self):
        assert detect_type("TMP_1") == "TMP"
        assert detect_type("tmp_room1") == "TMP"
        assert detect_type("PM25_outdoor") == "PM25"
        assert detect_type("co2") == "CO2"
        assert detect_type("x") == "GEN"

    def test_normalize_type(self):
        assert normalize_type("hum") == "HUM"
        assert normalize_type("nope") == "GEN"
        assert normalize_type(None) == "GEN"

    def test_category_info_fallback(self):
        assert category_info("electrical")["label"] == "Electrical"
        assert category_info("custom") == {"label": "custom", "icon": "grid"}
