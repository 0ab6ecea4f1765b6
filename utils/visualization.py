"""
Visualization utilities for the compression search.
"""

from typing import Iterable, Sequence, Tuple

import plotly.graph_objects as go

from compression.target_size import PHASE_FLOOR, PHASE_PRECHECK, PHASE_SEARCH, PHASE_SINGLE


PHASE_COLORS = {
    PHASE_SINGLE: "#3498db",
    PHASE_PRECHECK: "#f1c40f",
    PHASE_FLOOR: "#e67e22",
    PHASE_SEARCH: "#2ecc71",
}


def plot_search_trace(attempts: Iterable[Tuple[str, float, int]],
                      target_bytes: int,
                      tolerance_fraction: float = 0.05,
                      title: str = "Quality Search") -> go.Figure:
    """
    Create interactive Plotly chart of every encode tried during a search.

    Args:
        attempts: (phase, quality, size_bytes) entries in call order
        target_bytes: Requested output size
        tolerance_fraction: Acceptable deviation, drawn as a band
        title: Chart title

    Returns:
        Plotly figure
    """
    attempts = list(attempts)
    fig = go.Figure()

    tolerance_kb = target_bytes * tolerance_fraction / 1024
    target_kb = target_bytes / 1024

    fig.add_hrect(
        y0=target_kb - tolerance_kb,
        y1=target_kb + tolerance_kb,
        fillcolor="rgba(233, 69, 96, 0.12)",
        line_width=0,
    )
    fig.add_hline(
        y=target_kb,
        line=dict(color="#e94560", dash="dash"),
        annotation_text=f"Target {target_kb:.1f} KB",
    )

    # Connecting line in call order
    fig.add_trace(go.Scatter(
        x=list(range(1, len(attempts) + 1)),
        y=[size / 1024 for _, _, size in attempts],
        mode="lines",
        line=dict(width=1, color="rgba(168, 168, 179, 0.6)"),
        showlegend=False,
        hoverinfo="skip",
    ))

    for phase, color in PHASE_COLORS.items():
        points = [(i, q, s) for i, (p, q, s) in enumerate(attempts, start=1) if p == phase]
        if not points:
            continue
        fig.add_trace(go.Scatter(
            x=[i for i, _, _ in points],
            y=[s / 1024 for _, _, s in points],
            customdata=[q * 100 for _, q, _ in points],
            name=phase.capitalize(),
            mode="markers",
            marker=dict(size=11, color=color),
            hovertemplate="Attempt %{x}<br>Quality: %{customdata:.1f}%<br>"
                          "Size: %{y:.1f} KB<extra></extra>",
        ))

    fig.update_layout(
        title=dict(text=title, x=0.5),
        xaxis_title="Encode attempt",
        yaxis_title="File size (KB)",
        template="plotly_dark",
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        height=380,
    )
    fig.update_xaxes(dtick=1)

    return fig


def create_size_comparison(sizes: Sequence[Tuple[str, int]]) -> go.Figure:
    """
    Bar chart comparing file sizes, e.g. original, target and result.

    Args:
        sizes: (label, size_bytes) pairs

    Returns:
        Plotly figure
    """
    colors = ["#a8a8b3", "#e94560", "#2ecc71", "#3498db"]
    fig = go.Figure(go.Bar(
        x=[label for label, _ in sizes],
        y=[size / 1024 for _, size in sizes],
        marker_color=[colors[i % len(colors)] for i in range(len(sizes))],
        text=[f"{size / 1024:.1f} KB" for _, size in sizes],
        textposition="outside",
    ))
    fig.update_layout(
        yaxis_title="KB",
        template="plotly_dark",
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        height=300,
        showlegend=False,
    )
    return fig
