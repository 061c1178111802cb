"""
layers.py
Static per-layer tables.

- LAYER_CONFIGS: the (entity, variable) sources fetched for each thematic layer.
- REGION_DEFINITIONS: the regions drawn for each layer with their static
  intensity weights, used whether or not real data loaded.

Entities prefixed with "census-" are regional statistics sources; the rest of
the entity is the region ("us" or a US state name). Everything else is a
generic time-series entity (country/USA, Earth, geoId/06 ...).
"""

from dataclasses import dataclass
from typing import Dict, Tuple

REGIONAL_PREFIX = "census-"


@dataclass(frozen=True)
class SourceRef:
    entity: str
    variable: str
    display_name: str

    @property
    def is_regional(self) -> bool:
        return self.entity.startswith(REGIONAL_PREFIX)

    @property
    def region(self) -> str:
        """Region part of a regional entity ("census-Texas" -> "Texas")."""
        if self.is_regional:
            return self.entity[len(REGIONAL_PREFIX):]
        return self.entity


@dataclass(frozen=True)
class LayerConfig:
    layer_id: str
    sources: Tuple[SourceRef, ...]


@dataclass(frozen=True)
class RegionWeight:
    name: str
    intensity: float


_RAW_SOURCES = {
    "disease": [
        ("country/USA", "Count_MedicalConditionIncident_COVID_19_ConfirmedCase", "COVID-19 Cases (USA)"),
        ("country/GBR", "Count_MedicalConditionIncident_COVID_19_ConfirmedCase", "COVID-19 Cases (UK)"),
        ("census-us", "HEALTH_INSURANCE_COVERAGE", "US Health Insurance Coverage"),
        ("census-California", "HEALTH_INSURANCE_COVERAGE", "CA Health Insurance Coverage"),
        ("census-New York", "UNINSURED_POPULATION", "NY Uninsured Population"),
    ],
    "housing": [
        ("census-us", "MEDIAN_HOME_VALUE", "US Median Home Value"),
        ("census-California", "MEDIAN_HOME_VALUE", "California Median Home Value"),
        ("census-New York", "MEDIAN_HOME_VALUE", "New York Median Home Value"),
        ("census-Texas", "MEDIAN_HOME_VALUE", "Texas Median Home Value"),
        ("census-Florida", "MEDIAN_HOME_VALUE", "Florida Median Home Value"),
        ("census-us", "MEDIAN_RENT", "US Median Rent"),
        ("census-California", "MEDIAN_RENT", "California Median Rent"),
        ("census-us", "HOUSING_UNITS", "US Total Housing Units"),
        ("census-us", "HOMEOWNERSHIP_RATE", "US Homeownership Rate"),
        ("census-us", "HOUSEHOLD_SIZE", "US Median Household Size"),
    ],
    "environment": [
        ("country/USA", "Annual_Emissions_CarbonDioxide", "US CO2 Emissions"),
        ("Earth", "Mean_Temperature", "Global Temperature"),
        ("country/USA", "Area_Forest", "US Forest Area"),
    ],
    "politics": [
        ("country/USA", "Count_Person_Voter", "US Registered Voters"),
        ("country/USA", "Amount_EconomicActivity_ExpenditureActivity_Government_Federal",
         "Federal Government Spending"),
    ],
    "economy": [
        ("country/USA", "Amount_EconomicActivity_GrossDomesticProduction_Nominal", "US GDP"),
        ("country/USA", "UnemploymentRate_Person", "US Unemployment Rate"),
        ("census-us", "MEDIAN_HOUSEHOLD_INCOME", "US Median Household Income"),
        ("census-California", "MEDIAN_HOUSEHOLD_INCOME", "CA Median Household Income"),
        ("census-New York", "MEDIAN_HOUSEHOLD_INCOME", "NY Median Household Income"),
        ("census-us", "PER_CAPITA_INCOME", "US Per Capita Income"),
        ("census-us", "POVERTY_RATE", "US Poverty Rate"),
    ],
    "social": [
        ("country/USA", "Count_Person", "US Population"),
        ("census-us", "TOTAL_POPULATION", "US Census Population"),
        ("census-California", "TOTAL_POPULATION", "California Population"),
        ("census-New York", "TOTAL_POPULATION", "New York Population"),
        ("census-Texas", "TOTAL_POPULATION", "Texas Population"),
        ("census-us", "MEDIAN_AGE", "US Median Age"),
        ("census-us", "EDUCATIONAL_ATTAINMENT_BACHELORS", "US Bachelor's Degree Holders"),
    ],
}

LAYER_CONFIGS: Dict[str, LayerConfig] = {
    layer_id: LayerConfig(
        layer_id=layer_id,
        sources=tuple(SourceRef(entity, variable, name) for entity, variable, name in rows),
    )
    for layer_id, rows in _RAW_SOURCES.items()
}


_RAW_REGIONS = {
    "disease": [("United States", 0.9), ("United Kingdom", 0.7), ("Germany", 0.6)],
    "housing": [("California", 1.0), ("New York", 0.9), ("Texas", 0.8), ("Florida", 0.85)],
    "environment": [("China", 0.8), ("United States", 0.6)],
    "politics": [("United States", 1.0), ("Germany", 0.7), ("United Kingdom", 0.6)],
    "economy": [("United States", 0.9), ("China", 1.0), ("Japan", 0.8)],
    "social": [("United States", 0.8), ("United Kingdom", 0.7), ("Germany", 0.6)],
    "innovation": [
        ("California", 1.0),
        ("United States", 0.8),
        ("Japan", 0.9),
        ("Germany", 0.7),
        ("China", 0.85),
    ],
}

REGION_DEFINITIONS: Dict[str, Tuple[RegionWeight, ...]] = {
    layer_id: tuple(RegionWeight(name, weight) for name, weight in rows)
    for layer_id, rows in _RAW_REGIONS.items()
}


def get_region_weights(layer_id: str) -> Tuple[RegionWeight, ...]:
    return REGION_DEFINITIONS.get(layer_id, ())
