"""
간접효과 설정 테스트

설정 검증, 덮어쓰기, 로깅 설정을 확인합니다.
"""

import logging
import pytest
import sys
from pathlib import Path

# 프로젝트 루트를 Python path에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from indrect.analysis.indirect_effects.config import (
    IndirectEffectsConfig,
    PlotConfig,
    LOG_FORMAT,
    create_custom_config,
    create_default_config,
    configure_logging,
)
from indrect.analysis.indirect_effects.exceptions import ConfigurationError


class TestIndirectEffectsConfig:
    """IndirectEffectsConfig 테스트 클래스"""

    def test_defaults(self):
        config = create_default_config()

        assert config.n_points == 30
        assert config.exposure1_values == [-1.0, 0.0, 1.0]
        assert config.mediator2_quantiles == [0.1, 0.5, 0.9]
        assert config.conf_int is True
        assert config.ignore_random_effects is True
        assert config.alpha == pytest.approx(0.05)

    @pytest.mark.parametrize("n_points", [0, -5, 2.5, True, "30"])
    def test_invalid_n_points(self, n_points):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(n_points=n_points)

    def test_minimum_n_points(self):
        assert IndirectEffectsConfig(n_points=1).n_points == 1

    def test_empty_levels_rejected(self):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(exposure1_values=[])
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(mediator2_quantiles=[])

    def test_non_numeric_levels_rejected(self):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(exposure1_values=["low", "high"])
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(exposure1_values="abc")

    @pytest.mark.parametrize("quantiles", [[-0.1, 0.5], [0.5, 1.2]])
    def test_quantiles_out_of_range(self, quantiles):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(mediator2_quantiles=quantiles)

    def test_custom_levels_pass_through_unsorted(self, caplog):
        """정렬되지 않은 수준은 그대로 유지하고 경고만 남김"""
        with caplog.at_level(logging.WARNING):
            config = IndirectEffectsConfig(exposure1_values=[1, -1, 0, 0])

        assert config.exposure1_values == [1.0, -1.0, 0.0, 0.0]
        assert any("exposure1_values" in record.message for record in caplog.records)

    @pytest.mark.parametrize("level", [0.0, 1.0, 1.5])
    def test_invalid_confidence_level(self, level):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(confidence_level=level)

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig(log_level="LOUD")

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            IndirectEffectsConfig(n_points=0)

    def test_with_overrides_ignores_none(self):
        config = IndirectEffectsConfig(n_points=12)

        assert config.with_overrides(n_points=None, conf_int=None) is config

        updated = config.with_overrides(n_points=5, conf_int=False)
        assert updated.n_points == 5
        assert updated.conf_int is False
        assert config.n_points == 12

    def test_with_overrides_revalidates(self):
        with pytest.raises(ConfigurationError):
            IndirectEffectsConfig().with_overrides(n_points=0)

    def test_create_custom_config(self):
        config = create_custom_config(n_points=10, exposure1_values=(-2, 2),
                                      mediator2_quantiles=[0.25, 0.75],
                                      conf_int=False, results_dir="out",
                                      confidence_level=0.9)

        assert config.n_points == 10
        assert config.exposure1_values == [-2.0, 2.0]
        assert config.mediator2_quantiles == [0.25, 0.75]
        assert config.conf_int is False
        assert config.results_dir == "out"
        assert config.alpha == pytest.approx(0.1)


class TestPlotConfig:
    """PlotConfig 테스트 클래스"""

    def test_default_colors(self):
        config = PlotConfig()

        assert config.direct_x_color == '#CD4F39'
        assert config.palette_low == '#FFF5EE'
        assert config.exposure1_colors == ['#EEB422', '#CD00CD', '#B9D3EE']

    def test_invalid_alpha(self):
        with pytest.raises(ConfigurationError):
            PlotConfig(ribbon_alpha=1.5)

    def test_invalid_linewidth_range(self):
        with pytest.raises(ConfigurationError):
            PlotConfig(linewidth_range=(4.0, 1.0))

    def test_empty_facet_colors(self):
        with pytest.raises(ConfigurationError):
            PlotConfig(exposure1_colors=[])


class TestConfigureLogging:
    """로깅 설정 테스트"""

    def test_configure_logging_sets_level_and_format(self, tmp_path):
        log_file = tmp_path / "indirect.log"
        configure_logging(IndirectEffectsConfig(log_level="DEBUG"), log_file=str(log_file))

        root = logging.getLogger()
        try:
            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            assert all(h.formatter._fmt == LOG_FORMAT for h in root.handlers)
        finally:
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            root.setLevel(logging.WARNING)
