from datetime import datetime

import pytest

from bond_server.providers.http import SourceError

RATE_HEADER_ROW = [
    "Seria",
    "Kod ISIN",
    "Termin wykupu",
    "Początek sprzedaży",
    "Koniec sprzedaży",
    "Cena emisyjna",
    "Oprocentowanie",
    None,
]


def sample_workbook() -> dict[str, list[list[object]]]:
    return {
        "ROR": [
            RATE_HEADER_ROW,
            [None, None, None, None, None, None, "I okres", "II okres"],
            ["ROR0127", "PL0000117890", "12 miesięcy", datetime(2024, 1, 2), datetime(2024, 1, 31), 100, 0.02, 0.025],
            ["ROR0227", "PL0000117891", "12 miesięcy", "brak", datetime(2024, 2, 29), 100, 0.02, 0.025],
            ["Uwagi: stawki w skali roku", None, None, None, None, None, None, None],
        ],
        "OTS": [
            [
                "Seria",
                "Kod ISIN",
                "Termin wykupu",
                "Początek sprzedaży",
                "Koniec sprzedaży",
                "Cena emisyjna",
                "Oprocentowanie",
                "Odsetki",
            ],
            ["OTS0425", "PL0000117900", datetime(2025, 4, 19), datetime(2025, 1, 1), datetime(2025, 1, 31), 100, 0.03, 0.75],
        ],
        "XYZ": [
            ["Seria", "Cena emisyjna"],
            ["XYZ0125", 100],
        ],
        "Opis": [
            ["Lp.", "Kod", "Opis"],
            [1, "ROR", "Obligacje skarbowe\nRoczne oszczędnościowe"],
            [2, "OTS", "Trzymiesięczne"],
        ],
    }


class StubWorkbooks:
    """Stands in for SourceWorkbookCache; optionally fails the first N loads."""

    def __init__(self, workbook=None, failures: int = 0) -> None:
        self.workbook = workbook if workbook is not None else sample_workbook()
        self.failures = failures
        self.calls = 0

    async def get_workbook(self):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise SourceError("NETWORK", "Download timed out after 15s.")
        return self.workbook


@pytest.fixture
def workbook() -> dict[str, list[list[object]]]:
    return sample_workbook()


@pytest.fixture
def stub_workbooks() -> StubWorkbooks:
    return StubWorkbooks()
