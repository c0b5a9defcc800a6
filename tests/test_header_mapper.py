from __future__ import annotations

import unittest

from emissions_ingest.adapters import GENERIC_OPERATOR, TRACE_SECTOR
from emissions_ingest.domain.canonical import CanonicalField, HeaderMapping
from emissions_ingest.errors import SchemaMismatchError
from emissions_ingest.mappers.header_mapper import HeaderMapper
from emissions_ingest.parsing.csv_reader import RawRow, parse_csv


class _ExplodingAssistant:
    def suggest(self, headers):
        raise ConnectionError("backend down")


class _FixedAssistant:
    def suggest(self, headers):
        return HeaderMapping.from_wire({"Plant": "facility_name"}, notes="fixed")


class TestHeaderMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.mapper = HeaderMapper()

    def test_auto_maps_canonical_names_and_aliases(self) -> None:
        headers = ["Site Name", "Reporting Year", "tCO2e", "Scope", "Methodology", "Comments"]

        mapping = self.mapper.auto_map(headers, adapter=GENERIC_OPERATOR)

        self.assertEqual(mapping.mapping["Site Name"], CanonicalField.FACILITY_NAME)
        self.assertEqual(mapping.mapping["Reporting Year"], CanonicalField.YEAR)
        self.assertEqual(mapping.mapping["tCO2e"], CanonicalField.CO2E_TONNES)
        self.assertEqual(mapping.mapping["Scope"], CanonicalField.SCOPE)
        self.assertEqual(mapping.mapping["Methodology"], CanonicalField.METHOD)
        self.assertIsNone(mapping.mapping["Comments"])
        self.assertIsNone(mapping.notes)

    def test_auto_map_fuzzy_matches_typos_and_notes_them(self) -> None:
        headers = ["Facilty Name", "Year", "CO2e Tonnes"]

        mapping = self.mapper.auto_map(headers, adapter=GENERIC_OPERATOR)

        self.assertEqual(mapping.mapping["Facilty Name"], CanonicalField.FACILITY_NAME)
        self.assertIn("Facilty Name", mapping.notes or "")

    def test_auto_map_is_deterministic(self) -> None:
        headers = ["site", "yr", "tons", "data source"]

        first = self.mapper.auto_map(headers, adapter=GENERIC_OPERATOR)
        second = self.mapper.auto_map(list(headers), adapter=GENERIC_OPERATOR)

        self.assertEqual(first, second)

    def test_trace_headers_map_through_adapter_aliases(self) -> None:
        headers = ["iso3_country", "sector", "subsector", "start_time", "gas", "emissions_quantity"]

        mapping = self.mapper.auto_map(headers, adapter=TRACE_SECTOR)

        self.assertEqual(mapping.mapping["sector"], CanonicalField.FACILITY_NAME)
        self.assertEqual(mapping.mapping["start_time"], CanonicalField.YEAR)
        self.assertEqual(mapping.mapping["emissions_quantity"], CanonicalField.CO2E_TONNES)
        self.assertIsNone(mapping.mapping["iso3_country"])

    def test_resolve_prefers_caller_mapping(self) -> None:
        upload = parse_csv(b"Plant,When,Amount\nA,2022,1\n")
        caller = HeaderMapping.from_wire({"Plant": "facility_name", "When": "year", "Amount": "co2e_tonnes"})

        resolved = self.mapper.resolve(upload, adapter=GENERIC_OPERATOR, mapping=caller)

        self.assertIs(resolved, caller)

    def test_resolve_raises_when_required_field_unmapped(self) -> None:
        upload = parse_csv(b"Plant,Amount\nA,1\n")

        with self.assertRaises(SchemaMismatchError) as ctx:
            self.mapper.resolve(upload, adapter=GENERIC_OPERATOR)

        self.assertIn("year", ctx.exception.missing_fields)

    def test_map_row_handles_short_rows(self) -> None:
        mapping = HeaderMapping.from_wire({"a": "facility_name", "b": "year", "c": "co2e_tonnes"})
        row = RawRow(index=0, cells=("Plant A", "2022"))

        mapped = HeaderMapper.map_row(raw_row=row, mapping=mapping, header_index={"a": 0, "b": 1, "c": 2})

        self.assertEqual(mapped[CanonicalField.FACILITY_NAME], "Plant A")
        self.assertIsNone(mapped[CanonicalField.CO2E_TONNES])

    def test_suggest_fails_open(self) -> None:
        mapper = HeaderMapper(assistant=_ExplodingAssistant())

        mapping = mapper.suggest(["Plant", "Year"])

        self.assertEqual(mapping.mapping, {"Plant": None, "Year": None})
        self.assertTrue(mapping.notes)

    def test_suggest_delegates_to_assistant(self) -> None:
        mapper = HeaderMapper(assistant=_FixedAssistant())

        mapping = mapper.suggest(["Plant"])

        self.assertEqual(mapping.notes, "fixed")


if __name__ == "__main__":
    unittest.main()
