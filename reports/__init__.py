from .pdf import render_practice_plan, render_strategy_card

__all__ = ["render_strategy_card", "render_practice_plan"]
