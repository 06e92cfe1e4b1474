"""
Indirect Effects Visualizer Module

직접효과·간접효과 예측 테이블을 시각화하는 모듈입니다.
직접효과 곡선, 노출변수로 색칠한 간접효과 곡선, 상호작용 패싯 그래프를 생성합니다.
모든 플롯 함수는 matplotlib Figure를 반환하며, 저장은 save_figure로 별도 수행합니다.
"""

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.collections import LineCollection
from matplotlib.colors import Colormap, LinearSegmentedColormap, Normalize, to_rgba
from matplotlib.figure import Figure
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from pathlib import Path
import logging

from .config import PlotConfig
from .exceptions import VariableLookupError

logger = logging.getLogger(__name__)

RIBBON_FILL = '#333333'  # ggplot2 geom_ribbon 기본 채움색 (grey20)

Palette = Union[None, Colormap, Sequence[str]]


class IndirectEffectsVisualizer:
    """간접효과 시각화 클래스"""

    def __init__(self, plot_config: Optional[PlotConfig] = None):
        """
        시각화기 초기화

        Args:
            plot_config (Optional[PlotConfig]): 시각화 설정
        """
        from .config import DEFAULT_PLOT_CONFIG
        self.config = plot_config or DEFAULT_PLOT_CONFIG

    def exposure_colormap(self, palette: Palette = None) -> Colormap:
        """노출변수 그라디언트 컬러맵 (기본: seashell → tomato3, 투명도 0.8)"""
        if isinstance(palette, Colormap):
            return palette
        if palette is None:
            colors = [to_rgba(self.config.palette_low, self.config.palette_alpha),
                      to_rgba(self.config.palette_high, self.config.palette_alpha)]
            return LinearSegmentedColormap.from_list('exposure', colors, N=self.config.palette_steps)

        colors = list(palette)
        if len(colors) < 2:
            raise ValueError("팔레트에는 2개 이상의 색상이 필요합니다.")
        return LinearSegmentedColormap.from_list('exposure', colors, N=max(len(colors), 2))

    def plot_direct_effect(self, pred_data: pd.DataFrame, x_var: str, y_var: str = 'estimate',
                           title: str = "Direct Effect",
                           x_label: str = "Predictor", y_label: str = "Response",
                           x_color: Optional[str] = None, y_color: Optional[str] = None,
                           add_arrows: Optional[bool] = None,
                           line_width: Optional[float] = None,
                           ribbon_alpha: Optional[float] = None) -> Figure:
        """
        직접효과 플롯 (신뢰구간 리본 + 예측선)

        Args:
            pred_data (pd.DataFrame): 예측 테이블
            x_var (str): x축 변수
            y_var (str): y축 변수 (기본: estimate)
            title, x_label, y_label (str): 제목과 축 이름
            x_color, y_color (Optional[str]): 축 색상
            add_arrows (Optional[bool]): 화살표 축 장식 여부
            line_width (Optional[float]): 예측선 굵기
            ribbon_alpha (Optional[float]): 리본 투명도

        Returns:
            Figure: matplotlib Figure
        """
        _require_columns(pred_data, [x_var, y_var, 'conf.low', 'conf.high'], 'pred_data')

        x_color = x_color or self.config.direct_x_color
        y_color = y_color or self.config.direct_y_color
        add_arrows = self.config.add_arrows if add_arrows is None else add_arrows
        line_width = self.config.line_width if line_width is None else line_width
        ribbon_alpha = self.config.ribbon_alpha if ribbon_alpha is None else ribbon_alpha

        ordered = pred_data.sort_values(x_var, kind='stable')
        fig, ax = plt.subplots(figsize=self.config.figure_size)

        ax.fill_between(ordered[x_var], ordered['conf.low'], ordered['conf.high'],
                        color=RIBBON_FILL, alpha=ribbon_alpha, linewidth=0)
        ax.plot(ordered[x_var], ordered[y_var], color='black',
                linewidth=line_width, solid_capstyle='round')

        self._classic_theme(ax, title, x_label, y_label)
        if add_arrows:
            self._arrow_axes(ax, x_color, y_color)

        fig.tight_layout()
        return fig

    def plot_indirect_effect(self, pred_O_M: pd.DataFrame, pred_O_ME: pd.DataFrame,
                             mediator_var: str, exposure_var: str,
                             title: str = "Indirect Effect",
                             x_label: str = "Mediator", y_label: str = "Outcome",
                             x_color: Optional[str] = None, y_color: Optional[str] = None,
                             exposure_color_palette: Palette = None,
                             add_arrows: Optional[bool] = None) -> Figure:
        """
        단순 간접효과 플롯

        배경에 직접효과 O ~ M (리본 + 선)을, 전경에 노출변수로 색칠/굵기를 준
        간접효과 O ~ M(E) 선을 그립니다.
        """
        _require_columns(pred_O_M, [mediator_var, 'estimate', 'conf.low', 'conf.high'], 'pred_O_M')
        _require_columns(pred_O_ME, [mediator_var, exposure_var, 'estimate'], 'pred_O_ME')

        x_color = x_color or self.config.indirect_x_color
        y_color = y_color or self.config.indirect_y_color
        add_arrows = self.config.add_arrows if add_arrows is None else add_arrows
        cmap = self.exposure_colormap(exposure_color_palette)
        norm = _value_norm(pred_O_ME[exposure_var])

        fig, ax = plt.subplots(figsize=self.config.figure_size)

        # 직접효과 O ~ M (배경)
        direct = pred_O_M.sort_values(mediator_var, kind='stable')
        ax.fill_between(direct[mediator_var], direct['conf.low'], direct['conf.high'],
                        color=RIBBON_FILL, alpha=self.config.background_ribbon_alpha, linewidth=0)
        ax.plot(direct[mediator_var], direct['estimate'], color='black',
                linewidth=self.config.line_width, solid_capstyle='round')

        # 간접효과 O ~ M(E) (전경)
        line = self._gradient_line(ax, pred_O_ME[mediator_var], pred_O_ME['estimate'],
                                   pred_O_ME[exposure_var], cmap, norm)

        self._classic_theme(ax, title, x_label, y_label)
        self._colorbar(fig, ax, line, exposure_var, self.config.legend_position, 'horizontal')
        if add_arrows:
            self._arrow_axes(ax, x_color, y_color)

        return fig

    def plot_indirect_interaction(self, pred_O_ME1E2: pd.DataFrame, mediator_var: str,
                                  exposure1_var: str, exposure2_var: str,
                                  title: str = "Indirect Effect of E1*E2 on O through M",
                                  x_label: str = "Mediator", y_label: str = "Outcome",
                                  exposure1_colors: Optional[Sequence[str]] = None,
                                  exposure2_color_palette: Palette = None,
                                  facet_labels: Optional[Dict[Any, str]] = None) -> Figure:
        """
        상호작용하는 노출변수의 간접효과 패싯 플롯

        E1 수준별로 패싯을 나누고, 리본은 E1 수준 색상으로, 예측선은 E2로 색칠합니다.
        """
        _require_columns(pred_O_ME1E2,
                         [mediator_var, exposure1_var, exposure2_var, 'estimate', 'conf.low', 'conf.high'],
                         'pred_O_ME1E2')

        fill_colors = list(exposure1_colors or self.config.exposure1_colors)
        cmap = self.exposure_colormap(exposure2_color_palette)
        norm = _value_norm(pred_O_ME1E2[exposure2_var])
        levels = _facet_levels(pred_O_ME1E2[exposure1_var])

        fig, axes = self._facet_axes(len(levels))
        line = None
        for i, (ax, level) in enumerate(zip(axes, levels)):
            panel = pred_O_ME1E2[_level_mask(pred_O_ME1E2[exposure1_var], level)]
            panel = panel.sort_values(mediator_var, kind='stable')

            ax.fill_between(panel[mediator_var], panel['conf.low'], panel['conf.high'],
                            color=fill_colors[i % len(fill_colors)],
                            alpha=self.config.ribbon_alpha, linewidth=0)
            line = self._gradient_line(ax, panel[mediator_var], panel['estimate'],
                                       panel[exposure2_var], cmap, norm)
            self._facet_theme(ax, _facet_title(level, facet_labels), x_label,
                              y_label if i == 0 else None)

        fig.suptitle(title, fontsize=self.config.title_size)
        if line is not None:
            self._colorbar(fig, axes[0], line, exposure2_var,
                           self.config.facet_legend_position, 'vertical')
        return fig

    def plot_indirect_mediator_interaction(self, pred_O_M1M2: pd.DataFrame,
                                           pred_O_M1M2E: pd.DataFrame,
                                           mediator1_var: str, mediator2_var: str, exposure_var: str,
                                           title: str = "Indirect Effect of E on O through M1*M2",
                                           x_label: str = "Mediator 1", y_label: str = "Outcome",
                                           exposure_color_palette: Palette = None,
                                           facet_labels: Optional[Dict[Any, str]] = None) -> Figure:
        """
        상호작용하는 매개변수의 간접효과 패싯 플롯

        M2 수준별로 패싯을 나누고, 배경에 직접효과 O ~ M1*M2를, 전경에 노출변수로
        색칠한 간접효과 O ~ M1(E)*M2를 그립니다.
        """
        _require_columns(pred_O_M1M2,
                         [mediator1_var, mediator2_var, 'estimate', 'conf.low', 'conf.high'],
                         'pred_O_M1M2')
        _require_columns(pred_O_M1M2E, [mediator1_var, mediator2_var, exposure_var, 'estimate'],
                         'pred_O_M1M2E')

        cmap = self.exposure_colormap(exposure_color_palette)
        norm = _value_norm(pred_O_M1M2E[exposure_var])
        levels = _facet_levels(pd.concat([pred_O_M1M2[mediator2_var], pred_O_M1M2E[mediator2_var]]))

        fig, axes = self._facet_axes(len(levels))
        line = None
        for i, (ax, level) in enumerate(zip(axes, levels)):
            direct = pred_O_M1M2[_level_mask(pred_O_M1M2[mediator2_var], level)]
            direct = direct.sort_values(mediator1_var, kind='stable')
            ax.fill_between(direct[mediator1_var], direct['conf.low'], direct['conf.high'],
                            color=RIBBON_FILL, alpha=self.config.ribbon_alpha, linewidth=0)
            ax.plot(direct[mediator1_var], direct['estimate'], color='black', linewidth=1.0)

            indirect = pred_O_M1M2E[_level_mask(pred_O_M1M2E[mediator2_var], level)]
            if len(indirect) > 0:
                line = self._gradient_line(ax, indirect[mediator1_var], indirect['estimate'],
                                           indirect[exposure_var], cmap, norm)
            self._facet_theme(ax, _facet_title(level, facet_labels), x_label,
                              y_label if i == 0 else None)

        fig.suptitle(title, fontsize=self.config.title_size)
        if line is not None:
            self._colorbar(fig, axes[0], line, exposure_var,
                           self.config.facet_legend_position, 'vertical')
        return fig

    def save_figure(self, fig: Figure, save_path: Union[str, Path]) -> Path:
        """Figure 저장 후 닫기"""
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)

        fig.savefig(save_path, dpi=self.config.dpi, bbox_inches='tight')
        plt.close(fig)

        logger.info(f"플롯 저장: {save_path}")
        return save_path

    def _gradient_line(self, ax, x, y, values, cmap: Colormap, norm: Normalize) -> LineCollection:
        """값에 따라 색과 굵기가 변하는 선 (x 순서로 연결)"""
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        values = np.asarray(values, dtype=float)

        order = np.argsort(x, kind='stable')
        x, y, values = x[order], y[order], values[order]

        points = np.column_stack([x, y]).reshape(-1, 1, 2)
        segments = np.concatenate([points[:-1], points[1:]], axis=1)
        segment_values = values[:-1]

        low, high = self.config.linewidth_range
        if norm.vmax > norm.vmin:
            widths = np.interp(segment_values, [norm.vmin, norm.vmax], [low, high])
        else:
            widths = np.full(len(segment_values), (low + high) / 2)

        line = LineCollection(segments, cmap=cmap, norm=norm, linewidths=widths, capstyle='round')
        line.set_array(segment_values)
        ax.add_collection(line)
        ax.autoscale_view()
        return line

    def _classic_theme(self, ax, title: str, x_label: str, y_label: str):
        """theme_classic 대응 스타일"""
        sns.despine(ax=ax)
        ax.grid(False)
        ax.set_title(title, fontsize=self.config.title_size)
        ax.set_xlabel(x_label)
        ax.set_ylabel(y_label)

    def _facet_theme(self, ax, facet_title: str, x_label: str, y_label: Optional[str]):
        sns.despine(ax=ax)
        ax.grid(False)
        ax.set_title(facet_title, fontsize=self.config.title_size - 2)
        ax.set_xlabel(x_label)
        if y_label is not None:
            ax.set_ylabel(y_label)

    def _arrow_axes(self, ax, x_color: str, y_color: str):
        """색칠된 화살표 축, 눈금 제거, 굵은 축 글씨"""
        for side, color in (('bottom', x_color), ('left', y_color)):
            ax.spines[side].set_color(color)
            ax.spines[side].set_linewidth(1.5)

        ax.plot(1, 0, marker='>', color=x_color, markersize=9,
                transform=ax.transAxes, clip_on=False)
        ax.plot(0, 1, marker='^', color=y_color, markersize=9,
                transform=ax.transAxes, clip_on=False)

        ax.tick_params(length=0, labelsize=self.config.tick_label_size)
        ax.tick_params(axis='y', labelrotation=self.config.y_tick_rotation)
        for tick_label in ax.get_xticklabels() + ax.get_yticklabels():
            tick_label.set_fontweight('bold')

        ax.xaxis.label.set_color(x_color)
        ax.yaxis.label.set_color(y_color)
        for axis_label in (ax.xaxis.label, ax.yaxis.label):
            axis_label.set_fontsize(self.config.axis_title_size)
            axis_label.set_fontweight('bold')

    def _colorbar(self, fig: Figure, ax, mappable, label: str,
                  position: Tuple[float, float], orientation: str):
        """축 내부 범례 위치(중심 좌표)에 컬러바 배치"""
        x, y = position
        if orientation == 'horizontal':
            bounds = [x - 0.15, y - 0.02, 0.3, 0.04]
        else:
            bounds = [x - 0.02, y - 0.15, 0.04, 0.3]
        cax = ax.inset_axes(bounds)
        colorbar = fig.colorbar(mappable, cax=cax, orientation=orientation)
        colorbar.set_label(label)
        return colorbar

    def _facet_axes(self, n_facets: int):
        if n_facets == 0:
            raise ValueError("패싯으로 나눌 수준이 없습니다.")
        width = self.config.facet_width * n_facets
        fig, axes = plt.subplots(1, n_facets, figsize=(width, self.config.figure_size[1]),
                                 sharey=True, squeeze=False)
        return fig, list(axes[0])


def _require_columns(table: pd.DataFrame, columns: List[str], name: str):
    missing = [col for col in columns if col not in table.columns]
    if missing:
        raise VariableLookupError(missing, where=name)


def _value_norm(values: pd.Series) -> Normalize:
    values = pd.to_numeric(values, errors='coerce').dropna()
    if values.empty:
        return Normalize(vmin=0.0, vmax=1.0)
    return Normalize(vmin=float(values.min()), vmax=float(values.max()))


def _facet_levels(values: pd.Series) -> List[Any]:
    """패싯 수준 (정렬된 고유값, factor 수준 순서와 동일)"""
    return sorted(pd.unique(values.dropna()))


def _level_mask(values: pd.Series, level: Any) -> pd.Series:
    if pd.api.types.is_numeric_dtype(values):
        return pd.Series(np.isclose(values.to_numpy(dtype=float), float(level)), index=values.index)
    return values == level


def _facet_title(level: Any, facet_labels: Optional[Dict[Any, str]]) -> str:
    default = f"{level:g}" if isinstance(level, (int, float, np.number)) else str(level)
    if facet_labels:
        for key in (level, default, str(level)):
            if key in facet_labels:
                return facet_labels[key]
    return default


# 편의 함수들
def plot_direct_effect(pred_data: pd.DataFrame, x_var: str, y_var: str = 'estimate',
                       plot_config: Optional[PlotConfig] = None, **kwargs) -> Figure:
    """직접효과 플롯 생성 편의 함수"""
    visualizer = IndirectEffectsVisualizer(plot_config)
    return visualizer.plot_direct_effect(pred_data, x_var, y_var, **kwargs)


def plot_indirect_effect(pred_O_M: pd.DataFrame, pred_O_ME: pd.DataFrame,
                         mediator_var: str, exposure_var: str,
                         plot_config: Optional[PlotConfig] = None, **kwargs) -> Figure:
    """단순 간접효과 플롯 생성 편의 함수"""
    visualizer = IndirectEffectsVisualizer(plot_config)
    return visualizer.plot_indirect_effect(pred_O_M, pred_O_ME, mediator_var, exposure_var, **kwargs)


def plot_indirect_interaction(pred_O_ME1E2: pd.DataFrame, mediator_var: str,
                              exposure1_var: str, exposure2_var: str,
                              plot_config: Optional[PlotConfig] = None, **kwargs) -> Figure:
    """상호작용 노출변수 간접효과 플롯 생성 편의 함수"""
    visualizer = IndirectEffectsVisualizer(plot_config)
    return visualizer.plot_indirect_interaction(pred_O_ME1E2, mediator_var,
                                                exposure1_var, exposure2_var, **kwargs)


def plot_indirect_mediator_interaction(pred_O_M1M2: pd.DataFrame, pred_O_M1M2E: pd.DataFrame,
                                       mediator1_var: str, mediator2_var: str, exposure_var: str,
                                       plot_config: Optional[PlotConfig] = None, **kwargs) -> Figure:
    """상호작용 매개변수 간접효과 플롯 생성 편의 함수"""
    visualizer = IndirectEffectsVisualizer(plot_config)
    return visualizer.plot_indirect_mediator_interaction(pred_O_M1M2, pred_O_M1M2E,
                                                         mediator1_var, mediator2_var,
                                                         exposure_var, **kwargs)
