"""statusrelay - a click-events enabling relay for i3bar-protocol status generators.

Runs a status line generator (i3status by default) as a subprocess, rewrites the
protocol header so the bar sends click events, and forwards every other line
untouched. The relay runs as a single asyncio task.
"""
