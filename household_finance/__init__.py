"""Top-level package for the household finance dashboard.

The schedule engine turns recurring income, expense and investment
definitions into month-by-month figures and a balance projection:

* ``frequency`` – does an item apply in a month, and its monthly equivalent
* ``overrides`` – recorded history and future milestones layered on top
* ``cpf`` – statutory CPF contributions
* ``cpf_projection`` – month-by-month CPF account balances
* ``projection`` – the multi-month balance projection
* ``summary`` – single-month figures for the dashboard cards

``dashboard`` is a Streamlit app that ties everything together::

    streamlit run household_finance/dashboard.py
"""

from . import cpf  # noqa: F401  # re-exported for convenience
from . import cpf_projection  # noqa: F401
from . import frequency  # noqa: F401
from . import overrides  # noqa: F401
from . import projection  # noqa: F401
from . import summary  # noqa: F401
from .cpf import compute_cpf  # noqa: F401
from .cpf_projection import project_cpf  # noqa: F401
from .frequency import monthly_equivalent, resolves_this_month  # noqa: F401
from .overrides import resolve_amount  # noqa: F401
from .projection import project  # noqa: F401

__all__ = [
    "cpf",
    "cpf_projection",
    "frequency",
    "overrides",
    "projection",
    "summary",
    "compute_cpf",
    "monthly_equivalent",
    "project",
    "project_cpf",
    "resolve_amount",
    "resolves_this_month",
]
