"""CVELens - vulnerability intelligence aggregation.

Join NVD CVE records with FIRST.org EPSS scores and the CISA KEV catalog,
and summarize them for dashboards.
"""

__version__ = "1.0.0"

from cvelens.config import Settings
from cvelens.pipeline import Pipeline

__all__ = ["Pipeline", "Settings", "__version__"]
