"""Form Builder Toolkit UI package.

Toolkit-independent controllers a host UI drives for the builder canvas,
toolbar, property panel and document commands.
"""

# Ensure subpackages are imported so relative imports have resolvable parents
from . import controllers  # noqa: F401
