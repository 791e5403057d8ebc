"""Pattern Report Charts for AI PatternScanner

This module builds Plotly figures for detected patterns and backtest
statistics and writes them into a standalone HTML report.
"""

import html
import logging
import os
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from pattern_scanner.core.backtest_summary import generate_backtest_summary
from pattern_scanner.core.models import BacktestResult, Candle, PatternData

logger = logging.getLogger(__name__)

UP_COLOR = '#26a69a'
DOWN_COLOR = '#ef5350'

LEVEL_STYLES = {
    'entry': ('#2196f3', 'dash', '進場'),
    'target': ('#4caf50', 'dot', '目標'),
    'stop': ('#f44336', 'dot', '止損'),
}


class PatternChartBuilder:
    """型態圖表產生器

    Attributes:
        chart_height: 圖表高度 (px)
    """

    def __init__(self, chart_height: int = 600):
        self.chart_height = chart_height

    def _empty_figure(self, message: str) -> go.Figure:
        fig = go.Figure()
        fig.add_annotation(
            text=message,
            xref="paper", yref="paper",
            x=0.5, y=0.5,
            showarrow=False,
            font=dict(size=20)
        )
        return fig

    def create_pattern_chart(
        self,
        candles: Sequence[Candle],
        pattern: Optional[PatternData] = None,
        symbol: Optional[str] = None,
    ) -> go.Figure:
        """建立 K 線、成交量與型態價位圖

        Args:
            candles: K 線（由舊到新）
            pattern: 要標示進場/目標/止損價的型態
            symbol: 標題用的股票代碼（預設取自型態）

        Returns:
            Plotly Figure
        """
        symbol = symbol or (pattern.symbol if pattern else "")
        if not candles:
            return self._empty_figure("無數據可顯示")

        dates = [c.timestamp for c in candles]
        opens = [c.open for c in candles]
        closes = [c.close for c in candles]

        fig = make_subplots(
            rows=2, cols=1,
            shared_xaxes=True,
            vertical_spacing=0.03,
            row_heights=[0.7, 0.3],
            subplot_titles=(f'{symbol} K線圖', '成交量')
        )

        fig.add_trace(
            go.Candlestick(
                x=dates,
                open=opens,
                high=[c.high for c in candles],
                low=[c.low for c in candles],
                close=closes,
                name='K線',
                increasing_line_color=UP_COLOR,
                decreasing_line_color=DOWN_COLOR,
                increasing_fillcolor=UP_COLOR,
                decreasing_fillcolor=DOWN_COLOR
            ),
            row=1, col=1
        )

        colors = [UP_COLOR if close >= open_ else DOWN_COLOR for open_, close in zip(opens, closes)]
        fig.add_trace(
            go.Bar(
                x=dates,
                y=[c.volume for c in candles],
                name='成交量',
                marker_color=colors,
                opacity=0.7
            ),
            row=2, col=1
        )

        title = f'{symbol} 技術分析圖表'
        if pattern is not None:
            self._add_pattern_levels(fig, pattern)
            title = f'{symbol} {pattern.pattern_type} ({pattern.timeframe}) 信心 {pattern.confidence_score:.0f}'

        fig.update_layout(
            title=dict(text=title, font=dict(size=18)),
            xaxis_rangeslider_visible=False,
            height=self.chart_height,
            showlegend=True,
            legend=dict(
                orientation="h",
                yanchor="bottom",
                y=1.02,
                xanchor="right",
                x=1
            ),
            margin=dict(l=50, r=50, t=80, b=50),
            hovermode='x unified'
        )
        fig.update_yaxes(title_text="價格", row=1, col=1)
        fig.update_yaxes(title_text="成交量", row=2, col=1)
        return fig

    def _add_pattern_levels(self, fig: go.Figure, pattern: PatternData) -> None:
        """以水平線標示進場、目標與止損價"""
        levels = {
            'entry': pattern.entry_price,
            'target': pattern.target_price,
            'stop': pattern.stop_loss,
        }
        for key, price in levels.items():
            color, dash, label = LEVEL_STYLES[key]
            fig.add_hline(
                y=price,
                line=dict(color=color, width=1.5, dash=dash),
                annotation_text=f'{label} {price:.2f}',
                annotation_position='right',
                row=1, col=1
            )

    def create_accuracy_chart(
        self,
        results: Sequence[BacktestResult],
        timeframe: str = "all",
    ) -> go.Figure:
        """依型態類型建立回測成功率長條圖

        Args:
            results: 回測結果
            timeframe: 週期過濾（all 表示全部）

        Returns:
            Plotly Figure
        """
        pattern_types = list(OrderedDict.fromkeys(r.pattern_type for r in results))
        if not pattern_types:
            return self._empty_figure("無回測結果")

        summaries = [generate_backtest_summary(results, timeframe, t) for t in pattern_types]
        rates = [s.success_rate for s in summaries]

        fig = go.Figure(
            go.Bar(
                x=pattern_types,
                y=rates,
                marker_color=[UP_COLOR if rate >= 50 else DOWN_COLOR for rate in rates],
                text=[f'{rate:.1f}% ({s.total_patterns})' for rate, s in zip(rates, summaries)],
                textposition='outside',
                name='成功率'
            )
        )
        fig.update_layout(
            title=dict(text=f'型態回測成功率 ({timeframe})', font=dict(size=18)),
            yaxis=dict(title='成功率 (%)', range=[0, 105]),
            xaxis=dict(title='型態'),
            height=int(self.chart_height * 0.7),
            margin=dict(l=50, r=50, t=80, b=80),
        )
        return fig


def _summary_table(patterns: Sequence[PatternData]) -> str:
    rows = "".join(
        "<tr>"
        f"<td>{html.escape(p.symbol)}</td>"
        f"<td>{html.escape(p.timeframe)}</td>"
        f"<td>{html.escape(p.pattern_type)}</td>"
        f"<td>{p.direction.value}</td>"
        f"<td>{p.entry_price:.2f}</td>"
        f"<td>{p.target_price:.2f}</td>"
        f"<td>{p.stop_loss:.2f}</td>"
        f"<td>{p.confidence_score:.0f}</td>"
        f"<td>{html.escape(p.data_freshness)}</td>"
        "</tr>"
        for p in patterns
    )
    header = "".join(
        f"<th>{name}</th>"
        for name in ("Symbol", "Timeframe", "Pattern", "Direction", "Entry", "Target", "Stop", "Confidence", "Data")
    )
    return f"<table><thead><tr>{header}</tr></thead><tbody>{rows}</tbody></table>"


def write_report(
    path: str,
    figures: Sequence[go.Figure],
    title: str = "Pattern Scanner Report",
    patterns: Optional[Sequence[PatternData]] = None,
) -> Optional[str]:
    """將圖表寫入單一 HTML 檔

    Plotly.js 內嵌於第一張圖，檔案可離線開啟。

    Args:
        path: 輸出路徑
        figures: 圖表
        title: 報告標題
        patterns: 要列於表格的型態

    Returns:
        寫入的路徑，失敗時回傳 None
    """
    parts: List[str] = [f"<h1>{html.escape(title)}</h1>",
                        f"<p>Generated {datetime.now():%Y-%m-%d %H:%M}</p>"]
    if patterns:
        parts.append(_summary_table(patterns))
    for i, fig in enumerate(figures):
        parts.append(fig.to_html(full_html=False, include_plotlyjs=(i == 0)))

    document = (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title></head><body>"
        + "\n".join(parts)
        + "</body></html>"
    )

    try:
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(document)
        logger.info(f"Report written to {path} ({len(figures)} figures)")
        return path
    except OSError as e:
        logger.error(f"Failed to write report {path}: {e}")
        return None


def build_report_figures(
    candle_data: Dict[str, List[Candle]],
    patterns: Sequence[PatternData],
    results: Sequence[BacktestResult] = (),
    max_pattern_charts: int = 10,
    builder: Optional[PatternChartBuilder] = None,
) -> List[go.Figure]:
    """為型態（依信心排序）與回測結果建立報告圖表

    Args:
        candle_data: "SYMBOL|timeframe" -> K 線
        patterns: 型態
        results: 回測結果
        max_pattern_charts: 最多畫幾個型態
        builder: 圖表產生器

    Returns:
        圖表列表
    """
    builder = builder or PatternChartBuilder()
    figures: List[go.Figure] = []
    ranked = sorted(patterns, key=lambda p: p.confidence_score, reverse=True)
    for pattern in ranked[:max_pattern_charts]:
        candles = candle_data.get(f"{pattern.symbol}|{pattern.timeframe}", [])
        figures.append(builder.create_pattern_chart(candles, pattern))
    if results:
        figures.append(builder.create_accuracy_chart(results))
    return figures
