"""
Built-in MOSDAC knowledge base used when no corpus is supplied.
"""

from typing import List

from .models import Document

SEED_DOCUMENTS = [
    {
        "id": "insat-3d",
        "title": "INSAT-3D Satellite Mission",
        "content": (
            "INSAT-3D is an advanced meteorological satellite launched by ISRO in July 2013. "
            "It carries advanced payloads including Imager and Sounder for weather forecasting and disaster warning. "
            "The satellite provides crucial data for monsoon prediction, cyclone tracking, and atmospheric studies. "
            "Key instruments include 6-channel Imager (0.55-12.5 μm) and 19-channel Sounder (4.5-14.7 μm)."
        ),
        "url": "https://mosdac.gov.in/insat-3d",
        "category": "satellite",
    },
    {
        "id": "oceansat-3",
        "title": "Oceansat-3 Earth Observation Mission",
        "content": (
            "Oceansat-3 (EOS-06) is an earth observation satellite launched in November 2021. "
            "It carries Ocean Colour Monitor-3 (OCM-3) and Sea Surface Temperature Monitor (SSTM) for oceanographic studies. "
            "The satellite monitors ocean color, sea surface temperature, and chlorophyll concentration for marine ecosystem studies. "
            "Primary applications include fishery forecasting, coastal zone management, and climate studies."
        ),
        "url": "https://mosdac.gov.in/oceansat-3",
        "category": "satellite",
    },
    {
        "id": "megha-tropiques",
        "title": "Megha-Tropiques Indo-French Mission",
        "content": (
            "Megha-Tropiques is a joint Indo-French satellite mission launched in 2011 for studying tropical climate. "
            "It carries MADRAS microwave radiometer, SAPHIR humidity sounder, and GPS Radio-occultation receiver. "
            "The mission focuses on atmospheric water cycle, precipitation measurement, and tropical weather systems. "
            "Data products include rainfall estimation, humidity profiles, and atmospheric temperature."
        ),
        "url": "https://mosdac.gov.in/megha-tropiques",
        "category": "satellite",
    },
    {
        "id": "data-access",
        "title": "MOSDAC Data Access Policy",
        "content": (
            "MOSDAC provides free access to satellite data for research and operational use. "
            "Users need to register on the portal and agree to data usage terms. "
            "Data is available in various formats including HDF5, NetCDF, and GeoTIFF. "
            "Real-time and archive data are accessible through web interface and FTP services. "
            "Commercial use requires separate licensing agreements."
        ),
        "url": "https://mosdac.gov.in/data-access-policy",
        "category": "policy",
    },
    {
        "id": "rainfall-products",
        "title": "Satellite-based Rainfall Products",
        "content": (
            "MOSDAC provides multiple rainfall products from various satellite missions. "
            "Products include INSAT-3D/3DR Hydro-Estimator, GPM-IMERG, GSMaP, and Megha-Tropiques SAPHIR rainfall. "
            "Temporal resolution ranges from 30 minutes to daily, with spatial resolution from 4km to 25km. "
            "Data is available in real-time and archive modes for meteorological and hydrological applications. "
            "Quality assessment and validation information is provided with each product."
        ),
        "url": "https://mosdac.gov.in/rainfall-products",
        "category": "data-product",
    },
]


def load_seed_corpus() -> List[Document]:
    """Return the built-in documents in a fixed order."""
    return [Document.from_dict(data) for data in SEED_DOCUMENTS]
