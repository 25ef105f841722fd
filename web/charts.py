"""
Plotly line charts for the monitoring dashboard.

Each chart is built from the metrics history (oldest first) and returned as a
go.Figure, serialized by the Flask API with plotly.io.to_json and rendered
client-side with plotly.js.

  cpu            — process CPU usage %
  memory         — process memory as % of OS memory
  response_time  — rolling average response time (ms)
  throughput     — requests per minute
"""
import plotly.graph_objects as go

THEME = {
    "bg": "#F5F5F5",
    "plot_bg": "#FFFFFF",
    "grid": "#E4E7ED",
    "text": "#2C3E50",
    "text_dim": "#666666",
    "blue": "#007BFF",
    "green": "#28A745",
    "yellow": "#FFC107",
    "red": "#DC3545",
}

FONT_FAMILY = "system-ui, -apple-system, sans-serif"

CHARTS = {
    "cpu": {
        "title": "CPU Usage",
        "unit": "%",
        "color": THEME["blue"],
        "value": lambda m: m.cpu.usage,
    },
    "memory": {
        "title": "Memory Usage",
        "unit": "%",
        "color": THEME["green"],
        "value": lambda m: m.memory.percentage,
    },
    "response_time": {
        "title": "Response Time",
        "unit": "ms",
        "color": THEME["yellow"],
        "value": lambda m: m.application.response_time,
    },
    "throughput": {
        "title": "Throughput",
        "unit": "req/min",
        "color": THEME["red"],
        "value": lambda m: m.application.throughput,
    },
}


def _base_layout(title, height=300, **overrides):
    """Shared layout defaults for all charts."""
    layout = dict(
        title=dict(text=title, font=dict(size=15, color=THEME["text"])),
        paper_bgcolor=THEME["plot_bg"],
        plot_bgcolor=THEME["plot_bg"],
        font=dict(family=FONT_FAMILY, color=THEME["text"]),
        showlegend=False,
        margin=dict(l=50, r=20, t=40, b=40),
        height=height,
    )
    layout.update(overrides)
    return layout


def _hex_to_rgba(color, alpha):
    color = color.lstrip("#")
    r, g, b = (int(color[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r}, {g}, {b}, {alpha})"


def metric_chart(chart_type, history, threshold=None):
    """
    Line chart of one metric over the given history.

    Args:
        chart_type: key of CHARTS
        history: list of SystemMetrics, oldest first
        threshold: optional value drawn as a dotted alert line

    Raises:
        KeyError: unknown chart_type
    """
    chart = CHARTS[chart_type]
    times = [m.timestamp for m in history]
    values = [chart["value"](m) for m in history]

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=times,
        y=values,
        name=chart["title"],
        mode="lines",
        line=dict(color=chart["color"], width=2, shape="spline"),
        fill="tozeroy",
        fillcolor=_hex_to_rgba(chart["color"], 0.1),
        hovertemplate=f"%{{y:.1f}} {chart['unit']}<extra></extra>",
    ))

    if threshold is not None:
        fig.add_hline(
            y=threshold,
            line_dash="dot",
            line_color=THEME["red"],
            opacity=0.5,
            annotation_text=f"threshold {threshold:g}",
            annotation_position="top left",
            annotation_font_size=10,
            annotation_font_color=THEME["text_dim"],
        )

    fig.update_layout(**_base_layout(
        f"{chart['title']} ({chart['unit']})",
        xaxis=dict(gridcolor=THEME["grid"], showgrid=True, tickformat="%H:%M"),
        yaxis=dict(gridcolor=THEME["grid"], showgrid=True, rangemode="tozero"),
    ))
    return fig
