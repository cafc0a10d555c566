"""
Interactive charts for simulation results.

This module builds plotly figures from a BacktestResult: the equity curve,
the drawdown from the running peak, the return distribution, and a combined
HTML report.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from scipy import stats

from ..analysis.performance import BacktestResult
from ..risk.metrics import calculate_returns


logger = logging.getLogger(__name__)

THEMES = {
    'white': 'plotly_white',
    'dark': 'plotly_dark',
    'presentation': 'presentation',
}


class ChartGenerator:
    """
    Chart generation for simulation results.

    All charts are plotly figures indexed by bar timestamp.
    """

    def __init__(self, theme: str = "white"):
        """
        Initialize chart generator.

        Parameters
        ----------
        theme : str
            Color theme ("white", "dark", "presentation")
        """
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}. Available themes: {sorted(THEMES)}")
        self.theme = theme
        self.template = THEMES[theme]

        logger.info(f"Chart generator initialized: {theme} theme")

    def create_equity_curve(
        self,
        result: BacktestResult,
        benchmark_data: Optional[pd.Series] = None,
        title: str = "Portfolio Equity Curve"
    ) -> go.Figure:
        """
        Create equity curve chart.

        Parameters
        ----------
        result : BacktestResult
            Result with the snapshot sequence
        benchmark_data : pd.Series, optional
            Benchmark values indexed by timestamp
        title : str
            Chart title
        """
        curve = result.get_equity_curve()
        if len(curve) < 2:
            logger.warning("Insufficient data for equity curve")
            return self._empty_chart(title)

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=curve.index,
            y=curve['equity'],
            mode='lines',
            name='Portfolio',
            line=dict(color='blue', width=2)
        ))
        fig.add_trace(go.Scatter(
            x=curve.index,
            y=curve['cash'],
            mode='lines',
            name='Cash',
            line=dict(color='gray', width=1, dash='dot')
        ))

        if benchmark_data is not None:
            fig.add_trace(go.Scatter(
                x=benchmark_data.index,
                y=benchmark_data.values,
                mode='lines',
                name='Benchmark',
                line=dict(color='red', width=2, dash='dash')
            ))

        fig.update_layout(
            title=title,
            xaxis_title="Date",
            yaxis_title="Portfolio Value ($)",
            template=self.template,
            hovermode='x unified'
        )
        return fig

    def create_drawdown_chart(self, result: BacktestResult, title: str = "Portfolio Drawdown") -> go.Figure:
        """Create drawdown chart in percent below the running peak."""
        curve = result.get_equity_curve()
        if len(curve) < 2:
            return self._empty_chart(title)

        drawdowns = curve['drawdown'] * 100

        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=curve.index,
            y=drawdowns,
            mode='lines',
            fill='tozeroy',
            name='Drawdown',
            line=dict(color='red'),
            fillcolor='rgba(255, 0, 0, 0.3)'
        ))
        fig.add_hline(y=0, line_dash="dash", line_color="black")

        fig.update_layout(
            title=title,
            xaxis_title="Date",
            yaxis_title="Drawdown (%)",
            template=self.template,
            yaxis=dict(range=[min(drawdowns.min() * 1.1, -1), 1])
        )
        return fig

    def create_returns_distribution(self, result: BacktestResult, title: str = "Returns Distribution") -> go.Figure:
        """Histogram of period returns next to a normal Q-Q plot."""
        returns = calculate_returns(result.equity_values())
        if len(returns) < 2 or np.std(returns) == 0:
            return self._empty_chart(title)

        fig = make_subplots(rows=1, cols=2, subplot_titles=['Histogram', 'Q-Q Plot'])

        fig.add_trace(
            go.Histogram(x=returns, nbinsx=50, name='Returns', opacity=0.7),
            row=1, col=1
        )

        (osm, osr), (slope, intercept, _) = stats.probplot(returns, dist="norm")
        fig.add_trace(
            go.Scatter(x=osm, y=osr, mode='markers', name='Data',
                       marker=dict(color='blue', size=4)),
            row=1, col=2
        )
        fig.add_trace(
            go.Scatter(x=osm, y=slope * osm + intercept, mode='lines',
                       name='Normal Line', line=dict(color='red', dash='dash')),
            row=1, col=2
        )

        fig.update_layout(title=title, template=self.template, showlegend=True)
        return fig

    def create_report(self, result: BacktestResult, title: str = "Backtest Report") -> go.Figure:
        """Equity curve above drawdown on a shared time axis."""
        curve = result.get_equity_curve()
        if len(curve) < 2:
            return self._empty_chart(title)

        m = result.metrics
        fig = make_subplots(
            rows=2, cols=1,
            shared_xaxes=True,
            row_heights=[0.7, 0.3],
            vertical_spacing=0.05,
            subplot_titles=[
                f"Equity (total return {m.total_return:.2%}, Sharpe {m.sharpe_ratio:.2f})",
                f"Drawdown (max {m.max_drawdown:.2%})"
            ]
        )
        fig.add_trace(
            go.Scatter(x=curve.index, y=curve['equity'], mode='lines', name='Equity',
                       line=dict(color='blue', width=2)),
            row=1, col=1
        )
        fig.add_trace(
            go.Scatter(x=curve.index, y=curve['drawdown'] * 100, mode='lines', name='Drawdown',
                       fill='tozeroy', line=dict(color='red'), fillcolor='rgba(255, 0, 0, 0.3)'),
            row=2, col=1
        )

        fig.update_yaxes(title_text="Portfolio Value ($)", row=1, col=1)
        fig.update_yaxes(title_text="Drawdown (%)", row=2, col=1)
        fig.update_layout(title=title, template=self.template, hovermode='x unified', height=800)
        return fig

    def _empty_chart(self, title: str) -> go.Figure:
        """Create empty chart with message."""
        fig = go.Figure()
        fig.update_layout(
            title=title,
            template=self.template,
            annotations=[dict(text="No data available",
                              x=0.5, y=0.5, xref="paper", yref="paper",
                              showarrow=False, font=dict(size=20))]
        )
        return fig

    def save_chart(self, fig: go.Figure, filename: Union[str, Path]) -> Path:
        """
        Save chart as a standalone HTML file.

        Parameters
        ----------
        fig : go.Figure
            Chart figure
        filename : str or Path
            Output filename

        Returns
        -------
        Path
            The written file
        """
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.write_html(str(path), include_plotlyjs='cdn')
        logger.info(f"Chart saved: {path}")
        return path


def save_report(result: BacktestResult, filename: Union[str, Path], theme: str = "white") -> Path:
    """Write the combined equity and drawdown report to an HTML file."""
    generator = ChartGenerator(theme)
    return generator.save_chart(generator.create_report(result), filename)
