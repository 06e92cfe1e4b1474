"""
간접효과 시각화 테스트

플롯 함수가 Figure를 반환하고, 패싯 수와 필수 열 검증이 올바른지 확인합니다.
"""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
import sys
from pathlib import Path
from matplotlib.collections import LineCollection
from matplotlib.figure import Figure

# 프로젝트 루트를 Python path에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from indrect.analysis.indirect_effects.visualizer import (
    IndirectEffectsVisualizer,
    plot_direct_effect,
    plot_indirect_effect,
    plot_indirect_interaction,
    plot_indirect_mediator_interaction,
)
from indrect.analysis.indirect_effects.config import PlotConfig
from indrect.analysis.indirect_effects.exceptions import VariableLookupError


def prediction_table(**columns):
    estimate = np.asarray(columns.pop('estimate'), dtype=float)
    table = pd.DataFrame({
        'estimate': estimate,
        'std.error': 0.1,
        'conf.low': estimate - 0.2,
        'conf.high': estimate + 0.2,
    })
    for name, values in columns.items():
        table[name] = values
    return table


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


@pytest.fixture
def visualizer():
    return IndirectEffectsVisualizer(PlotConfig(dpi=50))


@pytest.fixture
def simple_tables():
    E = np.linspace(-2, 2, 10)
    M_sweep = np.linspace(-1, 1, 10)
    pred_O_M = prediction_table(estimate=0.8 * M_sweep, M=M_sweep)
    pred_O_ME = prediction_table(estimate=0.8 * (0.5 * E), M=0.5 * E, E=E)
    return pred_O_M, pred_O_ME


@pytest.fixture
def interaction_table():
    E1 = np.tile([-1.0, 0.0, 1.0], 10)
    E2 = np.repeat(np.linspace(0, 10, 10), 3)
    M = 0.3 * E1 + 0.1 * E2
    return prediction_table(estimate=0.8 * M, M=M, E1=E1, E2=E2)


@pytest.fixture
def mediator_interaction_tables():
    levels = np.array([-0.5, 0.0, 0.5])
    M1_sweep = np.linspace(-1, 1, 10)
    E = np.linspace(-2, 2, 10)
    surface = prediction_table(estimate=np.tile(M1_sweep, 3) * np.repeat(levels, 10),
                               M1=np.tile(M1_sweep, 3), M2=np.repeat(levels, 10))
    predicted_M1 = 0.4 * E
    indirect = prediction_table(estimate=np.tile(predicted_M1, 3) * np.repeat(levels, 10),
                                M1=np.tile(predicted_M1, 3), M2=np.repeat(levels, 10),
                                E=np.tile(E, 3))
    return surface, indirect


class TestDirectEffectPlot:
    """직접효과 플롯 테스트"""

    def test_returns_figure(self, visualizer, simple_tables):
        pred_O_M, _ = simple_tables
        fig = visualizer.plot_direct_effect(pred_O_M, 'M', title="O ~ M")

        assert isinstance(fig, Figure)
        ax = fig.axes[0]
        assert ax.get_title() == "O ~ M"
        assert ax.get_xlabel() == "Predictor"
        assert not ax.spines['top'].get_visible()

    def test_unsorted_rows_are_drawn_in_x_order(self, visualizer, simple_tables):
        pred_O_M, _ = simple_tables
        shuffled = pred_O_M.sample(frac=1.0, random_state=1)

        fig = visualizer.plot_direct_effect(shuffled, 'M', add_arrows=False)
        line = fig.axes[0].get_lines()[0]
        assert np.all(np.diff(line.get_xdata()) > 0)

    def test_missing_column(self, visualizer, simple_tables):
        pred_O_M, _ = simple_tables

        with pytest.raises(VariableLookupError):
            visualizer.plot_direct_effect(pred_O_M.drop(columns=['conf.low']), 'M')

    def test_nan_confidence_bounds(self, visualizer, simple_tables):
        pred_O_M, _ = simple_tables
        table = pred_O_M.assign(**{'conf.low': np.nan, 'conf.high': np.nan})

        assert isinstance(plot_direct_effect(table, 'M'), Figure)


class TestIndirectEffectPlot:
    """단순 간접효과 플롯 테스트"""

    def test_gradient_line_and_colorbar(self, visualizer, simple_tables):
        fig = visualizer.plot_indirect_effect(*simple_tables, 'M', 'E')

        ax = fig.axes[0]
        collections = [c for c in ax.collections if isinstance(c, LineCollection)]
        assert len(collections) == 1
        assert len(collections[0].get_segments()) == 9
        widths = collections[0].get_linewidths()
        assert min(widths) == pytest.approx(1.0)
        assert max(widths) < 6.0
        assert len(ax.child_axes) == 1

    def test_custom_palette(self, visualizer, simple_tables):
        fig = visualizer.plot_indirect_effect(*simple_tables, 'M', 'E',
                                              exposure_color_palette=['white', 'navy'])
        assert isinstance(fig, Figure)

    def test_missing_exposure_column(self, visualizer, simple_tables):
        pred_O_M, pred_O_ME = simple_tables

        with pytest.raises(VariableLookupError) as excinfo:
            visualizer.plot_indirect_effect(pred_O_M, pred_O_ME.drop(columns=['E']), 'M', 'E')
        assert excinfo.value.where == 'pred_O_ME'

    def test_convenience_function(self, simple_tables):
        fig = plot_indirect_effect(*simple_tables, 'M', 'E', title="Indirect")
        assert fig.axes[0].get_title() == "Indirect"


class TestInteractionPlots:
    """상호작용 패싯 플롯 테스트"""

    def test_one_facet_per_exposure1_level(self, visualizer, interaction_table):
        fig = visualizer.plot_indirect_interaction(interaction_table, 'M', 'E1', 'E2')

        facets = [ax for ax in fig.axes if ax.get_title()]
        assert [ax.get_title() for ax in facets] == ['-1', '0', '1']

    def test_facet_labels(self, visualizer, interaction_table):
        labels = {-1.0: 'Low', 0.0: 'Mid', 1.0: 'High'}
        fig = plot_indirect_interaction(interaction_table, 'M', 'E1', 'E2', facet_labels=labels)

        titles = [ax.get_title() for ax in fig.axes if ax.get_title()]
        assert titles == ['Low', 'Mid', 'High']

    def test_facet_order_sorted(self, visualizer, interaction_table):
        reordered = interaction_table.iloc[::-1].reset_index(drop=True)
        fig = visualizer.plot_indirect_interaction(reordered, 'M', 'E1', 'E2')

        titles = [ax.get_title() for ax in fig.axes if ax.get_title()]
        assert titles == ['-1', '0', '1']

    def test_mediator_interaction_facets(self, visualizer, mediator_interaction_tables):
        fig = visualizer.plot_indirect_mediator_interaction(*mediator_interaction_tables,
                                                            'M1', 'M2', 'E')

        titles = [ax.get_title() for ax in fig.axes if ax.get_title()]
        assert titles == ['-0.5', '0', '0.5']
        assert fig._suptitle.get_text() == "Indirect Effect of E on O through M1*M2"

    def test_mediator_interaction_convenience(self, mediator_interaction_tables):
        fig = plot_indirect_mediator_interaction(*mediator_interaction_tables, 'M1', 'M2', 'E',
                                                 plot_config=PlotConfig(add_arrows=False))
        assert isinstance(fig, Figure)

    def test_missing_facet_column(self, visualizer, interaction_table):
        with pytest.raises(VariableLookupError):
            visualizer.plot_indirect_interaction(interaction_table, 'M', 'E3', 'E2')


class TestSaveFigure:
    """그림 저장 테스트"""

    def test_save_figure(self, visualizer, simple_tables, tmp_path):
        fig = visualizer.plot_indirect_effect(*simple_tables, 'M', 'E')
        path = visualizer.save_figure(fig, tmp_path / "plots" / "indirect.png")

        assert path.exists()
        assert path.stat().st_size > 0
        assert not plt.fignum_exists(fig.number)
