# report.py
from typing import Optional

import plotly.graph_objects as go

from parameters import SimulationSummary

COLOR_RED = '#F1948A'
COLOR_YLW = '#FDEEBD'
COLOR_GRN = '#DAF7A6'
COLOR_BLU = '#D6EAF8'


def colorize(irr_bin: float) -> str:
    """Bar colour for a histogram bucket, following the loss / low / mid / high split."""
    if irr_bin < 0:
        return COLOR_RED
    if irr_bin < 20:
        return COLOR_YLW
    if irr_bin <= 80:
        return COLOR_BLU
    return COLOR_GRN


def render_irr_histogram(summary: SimulationSummary, title: Optional[str] = None) -> go.Figure:
    """Bar chart of trial counts per IRR bucket, titled with the summary statistics."""
    histogram = summary.histogram
    bins = histogram.index.tolist()

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=bins,
        y=histogram.values.tolist(),
        marker_color=[colorize(b) for b in bins],
        name='IRR'
    ))
    fig.update_layout(
        title=title or summary.stats_text.replace('\n', '<br>'),
        title_font_size=24,
        width=800,
        showlegend=False,
        xaxis_title='IRR (%)',
        yaxis_title='Trials',
        bargap=0
    )
    return fig
