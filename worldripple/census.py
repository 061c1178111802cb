"""
census.py
Regional statistics (ACS 5-year) through the data.gov proxy.
"""

import logging
import math
from typing import Any, Dict, Iterable, Optional

from .datagov import DataGovClient

logger = logging.getLogger(__name__)

ACS_ENDPOINT = "census/acs/acs5"
NATIONAL_REGION = "us"

CENSUS_VARIABLES = {
    "MEDIAN_HOME_VALUE": "B25077_001E",
    "MEDIAN_RENT": "B25064_001E",
    "HOUSING_UNITS": "B25001_001E",
    "OCCUPIED_UNITS": "B25002_002E",
    "VACANT_UNITS": "B25002_003E",
    "OWNER_OCCUPIED": "B25003_002E",
    "RENTER_OCCUPIED": "B25003_003E",
    "MEDIAN_HOUSEHOLD_INCOME": "B19013_001E",
    "PER_CAPITA_INCOME": "B19301_001E",
    "POVERTY_RATE": "B17001_002E",
    "TOTAL_POPULATION": "B01003_001E",
    "MEDIAN_AGE": "B01002_001E",
    "HEALTH_INSURANCE_COVERAGE": "B27001_001E",
    "UNINSURED_POPULATION": "B27010_017E",
    "EDUCATIONAL_ATTAINMENT_BACHELORS": "B15003_022E",
    "UNEMPLOYMENT_RATE": "B23025_005E",
    "LABOR_FORCE": "B23025_002E",
    "HOUSEHOLD_SIZE": "B25010_001E",
    "HOMEOWNERSHIP_RATE": "B25003_002E",
}

STATE_FIPS_CODES = {
    "Alabama": "01", "Arizona": "04", "California": "06", "Colorado": "08",
    "Florida": "12", "Georgia": "13", "Illinois": "17", "Indiana": "18",
    "Louisiana": "22", "Maryland": "24", "Massachusetts": "25", "Michigan": "26",
    "Minnesota": "27", "Missouri": "29", "New Jersey": "34", "New York": "36",
    "North Carolina": "37", "Ohio": "39", "Pennsylvania": "42", "South Carolina": "45",
    "Tennessee": "47", "Texas": "48", "Virginia": "51", "Washington": "53",
    "Wisconsin": "55",
}


def parse_census_value(response: Any) -> Optional[float]:
    """ACS responses are a header row followed by data rows; the value is row 1, column 0."""
    if not isinstance(response, list) or len(response) < 2:
        return None
    row = response[1]
    if not isinstance(row, (list, tuple)) or not row:
        return None
    try:
        value = float(row[0])
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


class RegionalStatsClient:
    def __init__(self, data_gov: DataGovClient, api_key: Optional[str] = None):
        self.data_gov = data_gov
        self.api_key = api_key

    def _geography(self, region: str) -> Optional[str]:
        if region.lower() == NATIONAL_REGION:
            return "us:*"
        fips = STATE_FIPS_CODES.get(region)
        if fips is None:
            logger.warning("No FIPS code found for state: %s", region)
            return None
        return f"state:{fips}"

    def fetch_value(self, region: str, variable: str, year: int) -> Optional[float]:
        """Value of a named ACS variable for "us" or a state name, None when unavailable."""
        code = CENSUS_VARIABLES.get(variable)
        if code is None:
            logger.warning("No Census variable code found for: %s", variable)
            return None
        geography = self._geography(region)
        if geography is None:
            return None

        params = {"get": code, "for": geography, "year": str(year)}
        if self.api_key:
            params["key"] = self.api_key
        logger.debug("Fetching %s (%s) for %s, year %s", variable, code, region, year)
        return parse_census_value(self.data_gov.fetch(ACS_ENDPOINT, params))

    def fetch_states(self, states: Iterable[str], variable: str, year: int) -> Dict[str, float]:
        results: Dict[str, float] = {}
        for state in states:
            value = self.fetch_value(state, variable, year)
            if value is not None:
                results[state] = value
        return results
