"""Core mathematics and configuration for the EdgeCalc engine.

This package contains pure, sport-agnostic building blocks:

- ``errors``      : typed error taxonomy shared by every engine
- ``odds_math``   : American / decimal / fractional conversion, implied probability
- ``kelly``       : Kelly criterion sizing and stake risk metrics
- ``confidence``  : enumerated confidence levels and their z-scores
- ``sport_config``: per-sport Elo parameters and the regression table

Nothing in this package imports from ``edgecalc.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
