"""EdgeCalc: probability and edge computation engine for sports betting.

Stateless numerical building blocks consumed by an external request layer:

- ``edgecalc.core``    : odds conversion, Kelly sizing, sport tables, errors
- ``edgecalc.services``: market, multi-factor, regression and calibration engines
- ``edgecalc.engine``  : facade that takes validated request schemas
"""

__version__ = "1.0.0"
