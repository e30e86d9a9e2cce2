"""
components/charts.py - Plotly chart builders for the assessment dashboard.

Both charts take the rows produced by report_generator.benchmark_rows().
"""

import plotly.graph_objects as go
from typing import Dict, List

ACTUAL_COLOR = "#3b82f6"
BENCHMARK_COLOR = "#22c55e"

LEVEL_COLORS = {
    "Not Assessed": "#9ca3af",
    "Learner": "#ef4444",
    "Qualified": "#f97316",
    "Experienced": "#eab308",
    "Master": "#22c55e",
}


def radar_chart(rows: List[Dict]) -> go.Figure:
    """Spider chart of actual points as a percentage of each step's benchmark."""
    fig = go.Figure()
    if not rows:
        return fig

    categories = [row["step"] for row in rows]
    categories.append(categories[0])

    benchmark = [row["target_percent"] for row in rows]
    benchmark.append(benchmark[0])
    actual = [row["actual_percent"] for row in rows]
    actual.append(actual[0])

    fig.add_trace(go.Scatterpolar(
        r=benchmark, theta=categories, name="Benchmark",
        fill="toself", opacity=0.15,
        line=dict(color=BENCHMARK_COLOR, width=2, dash="dash"),
        fillcolor=BENCHMARK_COLOR,
    ))
    fig.add_trace(go.Scatterpolar(
        r=actual, theta=categories, name="Actual",
        fill="toself", opacity=0.35,
        line=dict(color=ACTUAL_COLOR, width=3),
        fillcolor=ACTUAL_COLOR,
        customdata=[[row["actual"], row["target"]] for row in rows] + [[rows[0]["actual"], rows[0]["target"]]],
        hovertemplate="%{theta}: %{customdata[0]}/%{customdata[1]} pts (%{r}%)<extra></extra>",
    ))

    top = max(100, max(actual))
    fig.update_layout(
        polar=dict(radialaxis=dict(visible=True, range=[0, top])),
        title="Step Scores vs Benchmark",
        height=500, margin=dict(t=60, b=40),
        legend=dict(font=dict(size=14)),
    )
    return fig


def step_score_bar(rows: List[Dict]) -> go.Figure:
    """Bar chart of step points colored by step level, with the benchmark as markers."""
    fig = go.Figure()
    if not rows:
        return fig

    steps = [row["step"] for row in rows]
    fig.add_trace(go.Bar(
        x=steps, y=[row["actual"] for row in rows], name="Points",
        marker_color=[LEVEL_COLORS.get(row["level"], ACTUAL_COLOR) for row in rows],
        text=[row["level"] for row in rows], textposition="outside",
    ))
    fig.add_trace(go.Scatter(
        x=steps, y=[row["target"] for row in rows], name="Benchmark",
        mode="markers", marker=dict(symbol="line-ew-open", size=28, color=BENCHMARK_COLOR),
    ))

    fig.update_layout(
        title="Points per Step",
        yaxis=dict(title="Points"),
        xaxis=dict(tickangle=-30),
        height=400, margin=dict(t=50, b=80),
        plot_bgcolor="white",
    )
    return fig
