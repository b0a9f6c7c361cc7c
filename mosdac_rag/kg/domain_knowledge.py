"""
Curated MOSDAC domain knowledge used to describe and seed the graph.
"""

from typing import Dict, List, NamedTuple

from .models import EntityLabel, normalize_text

DOMAIN_KNOWLEDGE_EVIDENCE = "domain_knowledge"

LABEL_DESCRIPTIONS: Dict[EntityLabel, str] = {
    EntityLabel.SATELLITE: "Earth observation or meteorological satellite",
    EntityLabel.INSTRUMENT: "Scientific instrument or sensor",
    EntityLabel.ORGANIZATION: "Space agency or research organization",
    EntityLabel.DATA_PRODUCT: "Satellite-derived data product",
    EntityLabel.MISSION: "Space mission or application domain",
}

# Keyed by normalized name so "INSAT 3D" style spellings do not matter for lookup.
CURATED_DESCRIPTIONS: Dict[str, str] = {
    normalize_text(name): description for name, description in {
        "ISRO": "Indian Space Research Organisation - India's national space agency",
        "MOSDAC": "Meteorological and Oceanographic Satellite Data Archival Centre",
        "INSAT-3D": "Advanced meteorological satellite for weather forecasting and disaster warning",
        "Oceansat-3": "Earth observation satellite for ocean color and sea surface temperature monitoring",
        "Megha-Tropiques": "Indo-French satellite mission for tropical climate studies",
        "Imager": "6-channel imaging radiometer for weather observation",
        "Sounder": "19-channel atmospheric sounder for temperature and humidity profiling",
        "OCM-3": "Ocean Colour Monitor-3 for marine ecosystem studies",
        "SSTM": "Sea Surface Temperature Monitor for ocean temperature measurement",
        "MADRAS": "Microwave radiometer for rain and atmospheric structure detection",
        "SAPHIR": "Humidity sounder for tropical atmospheric profiling",
    }.items()
}


class SeedRelation(NamedTuple):
    source_name: str
    source_label: EntityLabel
    type: str
    target_name: str
    target_label: EntityLabel


SEED_RELATIONS: List[SeedRelation] = [
    SeedRelation("ISRO", EntityLabel.ORGANIZATION, "operates", "MOSDAC", EntityLabel.ORGANIZATION),
    SeedRelation("INSAT-3D", EntityLabel.SATELLITE, "carries", "Imager", EntityLabel.INSTRUMENT),
    SeedRelation("INSAT-3D", EntityLabel.SATELLITE, "carries", "Sounder", EntityLabel.INSTRUMENT),
    SeedRelation("Oceansat-3", EntityLabel.SATELLITE, "carries", "OCM-3", EntityLabel.INSTRUMENT),
    SeedRelation("Oceansat-3", EntityLabel.SATELLITE, "carries", "SSTM", EntityLabel.INSTRUMENT),
    SeedRelation("Megha-Tropiques", EntityLabel.SATELLITE, "carries", "MADRAS", EntityLabel.INSTRUMENT),
    SeedRelation("Megha-Tropiques", EntityLabel.SATELLITE, "carries", "SAPHIR", EntityLabel.INSTRUMENT),
]


def describe_entity(name: str, label: EntityLabel) -> str:
    """Curated description for well-known names, label template otherwise."""
    curated = CURATED_DESCRIPTIONS.get(normalize_text(name))
    if curated:
        return curated
    return LABEL_DESCRIPTIONS.get(EntityLabel(label), "Entity identified in MOSDAC documentation")
