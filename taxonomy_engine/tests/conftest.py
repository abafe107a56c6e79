"""Shared pytest fixtures for taxonomy engine tests."""

import shutil
import tempfile

import pytest

from taxonomy_engine.core.errors import StoreError
from taxonomy_engine.core.logger import EngineLogger
from taxonomy_engine.lookup.cache import LookupCache
from taxonomy_engine.lookup.resolver import ShortcodeResolver
from taxonomy_engine.store.memory_store import MemoryDocumentStore, MemoryWriteBatch


CLIENT_ID = "C1"
CAMPAIGN_ID = "CMP1"
FIXED_NOW = "2025-03-01T12:00:00+00:00"

CAMPAIGN_PATH = ("clients", CLIENT_ID, "campaigns", CAMPAIGN_ID)
SECTION_PATH = CAMPAIGN_PATH + ("versions", "V1", "onglets", "O1", "sections", "S1")
T1_PATH = SECTION_PATH + ("tactiques", "T1")
T2_PATH = SECTION_PATH + ("tactiques", "T2")
P1_PATH = T1_PATH + ("placements", "P1")
P2_PATH = T1_PATH + ("placements", "P2")
P3_PATH = T2_PATH + ("placements", "P3")
CR1_PATH = P1_PATH + ("creatifs", "CR1")
CR2_PATH = P3_PATH + ("creatifs", "CR2")


def fixed_clock() -> str:
    return FIXED_NOW


# ── Seed data ───────────────────────────────────────────


def seed_documents() -> dict:
    """A campaign with two tactics, three placements and two creatives.

    T1/P1 and its creative CR1 carry every kind of reference; T1/P2 has no
    product or channel; T2/P3 overrides its channel with a manual open value.
    """
    return {
        ("shortcodes", "PRD1"): {
            "SH_Code": "P1",
            "SH_Display_Name_FR": "Produit Un",
            "SH_Display_Name_EN": "Product One",
            "SH_Default_UTM": "prod1",
        },
        ("shortcodes", "CHN1"): {
            "SH_Code": "SOC",
            "SH_Display_Name_FR": "Social",
            "SH_Display_Name_EN": "",
            "SH_Default_UTM": "",
        },
        ("shortcodes", "PUB1"): {
            "SH_Code": "META",
            "SH_Display_Name_FR": "Meta FR",
            "SH_Display_Name_EN": "Meta",
            "SH_Default_UTM": "meta",
        },
        ("clients", CLIENT_ID, "customCodes", "cc1"): {
            "shortcodeId": "PRD1",
            "customCode": "PRODUCT-ONE",
        },
        ("clients", CLIENT_ID, "taxonomies", "TX1"): {
            "NA_Display_Name": "Tags",
            "NA_Name_Level_1": "[CA_Name:display_fr]-<[PL_Product:code]_[PL_Channel:code]>",
            "NA_Name_Level_2": "[TC_Publisher:utm]",
            "NA_Name_Level_3": "[PL_Product:custom_code]",
            "NA_Name_Level_4": "",
            "NA_Name_Level_5": "[CR_Version:open]_[PL_Product:code]",
            "NA_Name_Level_6": "[CR_Sprint_Dates:open]",
        },
        ("clients", CLIENT_ID, "taxonomies", "TX2"): {
            "NA_Display_Name": "Platform",
            "NA_Name_Level_1": "[TC_Publisher:display_en]",
            "NA_Name_Level_5": "[CR_Label:open]",
        },
        CAMPAIGN_PATH: {"CA_Name": "Summer", "CA_Year": 2025},
        CAMPAIGN_PATH + ("versions", "V1"): {"name": "Original"},
        CAMPAIGN_PATH + ("versions", "V1", "onglets", "O1"): {"name": "Main"},
        SECTION_PATH: {"name": "Digital"},
        T1_PATH: {"TC_Publisher": "PUB1"},
        T2_PATH: {"TC_Publisher": "Custom Pub"},
        P1_PATH: {
            "PL_Label": "P One",
            "PL_Product": "PRD1",
            "PL_Channel": "",
            "PL_Taxonomy_Tags": "TX1",
            "PL_Taxonomy_Platform": "TX2",
            "PL_Taxonomy_MediaOcean": "TX_MISSING",
        },
        P2_PATH: {
            "PL_Label": "P Two",
            "PL_Product": "",
            "PL_Channel": "",
            "PL_Taxonomy_Tags": "TX1",
        },
        P3_PATH: {
            "PL_Label": "P Three",
            "PL_Product": "PRD1",
            "PL_Channel": "CHN1",
            "PL_Taxonomy_Tags": "TX1",
            "PL_Taxonomy_Values": {
                "PL_Channel": {"open": True, "openValue": "manual"},
            },
        },
        CR1_PATH: {
            "CR_Label": "Banner",
            "CR_Version": "v1",
            "CR_Start_Date": "2025-01-05",
            "CR_End_Date": "2025-02-28",
            "CR_Taxonomy_Tags": "TX1",
            "CR_Taxonomy_Platform": "TX2",
        },
        CR2_PATH: {
            "CR_Label": "Video",
            "CR_Version": "v2",
            "CR_Taxonomy_Tags": "TX1",
        },
    }


# ── Fake stores ─────────────────────────────────────────


class CountingStore(MemoryDocumentStore):
    """Memory store that records every read it serves."""

    def __init__(self, documents=None):
        super().__init__(documents)
        self.reads: list[tuple] = []
        self.queries: list[tuple] = []

    async def get_document(self, path):
        self.reads.append(tuple(path))
        return await super().get_document(path)

    async def query_documents(self, path, field, value):
        self.queries.append((tuple(path), field, value))
        return await super().query_documents(path, field, value)

    def read_count(self, path) -> int:
        return self.reads.count(tuple(path))


class _FailingBatch(MemoryWriteBatch):
    async def commit(self) -> None:
        raise StoreError("Commit rejected", status_code=503)


class FailingStore(MemoryDocumentStore):
    """Memory store whose reads and listings of ``fail_paths`` blow up, and optionally every commit."""

    def __init__(self, documents=None, fail_paths=(), fail_commit=False,
                 error=RuntimeError("boom")):
        super().__init__(documents)
        self.fail_paths = {tuple(p) for p in fail_paths}
        self.fail_commit = fail_commit
        self.error = error

    async def get_document(self, path):
        if tuple(path) in self.fail_paths:
            raise self.error
        return await super().get_document(path)

    async def list_documents(self, path):
        if tuple(path) in self.fail_paths:
            raise self.error
        return await super().list_documents(path)

    def batch(self):
        if self.fail_commit:
            return _FailingBatch(self)
        return super().batch()


# ── Fixtures ────────────────────────────────────────────


@pytest.fixture
def logger():
    return EngineLogger(run_id="test_run")


@pytest.fixture
def store():
    return MemoryDocumentStore(seed_documents())


@pytest.fixture
def counting_store():
    return CountingStore(seed_documents())


@pytest.fixture
def resolver(store, logger):
    return ShortcodeResolver(store, LookupCache(), logger)


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp(prefix="taxonomy_test_")
    yield d
    shutil.rmtree(d, ignore_errors=True)
