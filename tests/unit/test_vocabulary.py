import pytest

from docintake.registry.vocabulary import DocumentTypeVocabulary


class TestFold:
    def test_strips_accents_and_case(self, vocabulary: DocumentTypeVocabulary) -> None:
        assert vocabulary.fold("Albarán") == "albaran"

    def test_collapses_separators(self, vocabulary: DocumentTypeVocabulary) -> None:
        assert vocabulary.fold("  Parte_Médico -  urgente ") == "parte medico urgente"


class TestNormalize:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Factura", "factura"),
            ("Invoice", "factura"),
            ("Delivery note", "albaran"),
            ("Meeting Minutes", "acta"),
            ("ESCRITURA DE COMPRAVENTA", "escritura"),
            ("quote", "presupuesto"),
            ("Notice", "comunicado"),
        ],
    )
    def test_maps_synonyms(
        self, vocabulary: DocumentTypeVocabulary, label: str, expected: str
    ) -> None:
        assert vocabulary.normalize(label) == expected

    def test_unknown_labels_stay_folded(self, vocabulary: DocumentTypeVocabulary) -> None:
        assert vocabulary.normalize("Póliza de Seguro") == "poliza de seguro"
