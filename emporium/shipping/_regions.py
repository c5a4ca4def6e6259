"""
Peru region reference data.

Metropolitan regions resolve shipping per district; every other region
resolves per province name.
"""

from __future__ import annotations

from types import MappingProxyType

COUNTRY_CODE = "PE"

LIMA_METROPOLITANA = "PE:LMA"
CALLAO = "PE:CAL"

_LIMA_POSTAL_CODES = {
    "Ancon": "15123",
    "Ate": "15026",
    "Barranco": "15063",
    "Breña": "15083",
    "Carabayllo": "15121",
    "Chaclacayo": "15472",
    "Chorrillos": "15064",
    "Cieneguilla": "15593",
    "Comas": "15324",
    "El Agustino": "15009",
    "Independencia": "15311",
    "Jesus Maria": "15076",
    "La Molina": "15024",
    "La Victoria": "15018",
    "Lince": "15073",
    "Los Olivos": "15307",
    "Lurigancho": "15457",
    "Lurin": "15841",
    "Magdalena del Mar": "15076",
    "Pueblo Libre": "15084",
    "Miraflores": "15074",
    "Pachacamac": "15823",
    "Puente Piedra": "15121",
    "Rimac": "15093",
    "San Borja": "15021",
    "San Isidro": "15046",
    "San Juan de Lurigancho": "15401",
    "San Juan de Miraflores": "15801",
    "San Luis": "15021",
    "San Martin de Porres": "15102",
    "San Miguel": "15088",
    "Santa Anita": "15009",
    "Santiago de Surco": "15039",
    "Surquillo": "15048",
    "Villa El Salvador": "15831",
    "Villa Maria del Triunfo": "15809",
}

_CALLAO_POSTAL_CODES = {
    "Callao": "07021",
    "Bellavista": "07016",
    "Carmen de la Legua Reynoso": "07006",
    "La Perla": "07011",
    "La Punta": "07021",
    "Ventanilla": "07046",
}

# district -> postal code, per metropolitan region
METROPOLITAN_DISTRICTS = MappingProxyType({
    LIMA_METROPOLITANA: MappingProxyType(_LIMA_POSTAL_CODES),
    CALLAO: MappingProxyType(_CALLAO_POSTAL_CODES),
})

# region code -> shipping zone name
PROVINCE_NAMES = MappingProxyType({
    "PE:AMA": "Amazonas",
    "PE:ANC": "Áncash",
    "PE:APU": "Apurímac",
    "PE:ARE": "Arequipa",
    "PE:AYA": "Ayacucho",
    "PE:CAJ": "Cajamarca",
    "PE:CUS": "Cusco",
    "PE:HUV": "Huancavelica",
    "PE:HUC": "Huánuco",
    "PE:ICA": "Ica",
    "PE:JUN": "Junín",
    "PE:LAL": "La Libertad",
    "PE:LAM": "Lambayeque",
    "PE:LOR": "Loreto",
    "PE:MAD": "Madre de Dios",
    "PE:MDD": "Madre de Dios",
    "PE:MOQ": "Moquegua",
    "PE:MOC": "Moquegua",
    "PE:PAS": "Pasco",
    "PE:PIU": "Piura",
    "PE:PUN": "Puno",
    "PE:SAM": "San Martín",
    "PE:SMN": "San Martín",
    "PE:TAC": "Tacna",
    "PE:TUM": "Tumbes",
    "PE:UCA": "Ucayali",
})


def is_metropolitan(region_code: str) -> bool:
    return region_code in METROPOLITAN_DISTRICTS


def districts_of(region_code: str) -> tuple[str, ...]:
    """Known districts for a metropolitan region, empty otherwise."""
    return tuple(METROPOLITAN_DISTRICTS.get(region_code, {}))


def postal_code_for(region_code: str, district: str) -> str | None:
    return METROPOLITAN_DISTRICTS.get(region_code, {}).get(district)


def province_name(region_code: str) -> str | None:
    return PROVINCE_NAMES.get(region_code)


def is_known_region(region_code: str) -> bool:
    return is_metropolitan(region_code) or region_code in PROVINCE_NAMES


__all__ = (
    "COUNTRY_CODE",
    "LIMA_METROPOLITANA",
    "CALLAO",
    "METROPOLITAN_DISTRICTS",
    "PROVINCE_NAMES",
    "is_metropolitan",
    "districts_of",
    "postal_code_for",
    "province_name",
    "is_known_region",
)
