import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from adperf.domain.models import ClientAccount, PerformanceRecord, make_unique_id
from adperf.infrastructure.stores import in_memory_dataset, in_memory_ledger
from adperf.ledger import ClientLocks

ADS_HEADER = (
    "Nombre de la cuenta;Nombre de la campaña;Nombre del conjunto de anuncios;Nombre del anuncio;"
    "Día;Edad;Sexo;Entrega de la campaña;Entrega del conjunto de anuncios;Entrega del anuncio;"
    "Importe gastado (EUR);Impresiones;Compras;Valor de conversión de compras"
)


@pytest.fixture
def clients():
    return [
        ClientAccount(id="acme", name="Acme Store", currency="EUR", external_account_name="Acme"),
        ClientAccount(id="globex", name="Globex"),
    ]


@pytest.fixture
def dataset():
    return in_memory_dataset()


@pytest.fixture
def ledger():
    return in_memory_ledger()


@pytest.fixture
def locks():
    return ClientLocks()


@pytest.fixture
def make_record():
    def _make(
        day="2024-05-10",
        ad_name="Ad 1",
        campaign_name="Campaign",
        ad_set_name="Set A",
        age="25-34",
        gender="female",
        client_id="acme",
        delivery="active",
        **metrics,
    ):
        return PerformanceRecord(
            client_id=client_id,
            unique_id=make_unique_id(day, campaign_name, ad_name, age, gender),
            day=day,
            campaign_name=campaign_name,
            ad_set_name=ad_set_name,
            ad_name=ad_name,
            age=age,
            gender=gender,
            account_name="Acme",
            campaign_delivery=delivery,
            ad_set_delivery=delivery,
            ad_delivery=delivery,
            **metrics,
        )

    return _make


@pytest.fixture
def ads_csv():
    def _build(*rows):
        lines = [ADS_HEADER, *(";".join(row) for row in rows)]
        return ("\n".join(lines) + "\n").encode("utf-8")

    return _build
