"""Decision engines built on ``edgecalc.core``.

- ``market``            : bookmaker margin, fair probability, edge ranking
- ``factors``           : multi-factor probability with correlation adjustment
- ``statistical_models``: Elo, Poisson and feature-regression sub-models
- ``regression``        : regression to the mean and cognitive-bias flags
- ``calibration``       : Brier score, calibration curve, recommendations
- ``risk``              : daily stop-loss / stop-win and open-bet limits
"""
