"""Reporting module - Plotly 圖表與 HTML 報告"""

from .charts import PatternChartBuilder, build_report_figures, write_report

__all__ = [
    'PatternChartBuilder',
    'build_report_figures',
    'write_report',
]
