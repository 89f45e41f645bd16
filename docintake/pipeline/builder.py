from pathlib import Path

from docintake.boundaries.detector import MultiDocumentBoundaryDetector
from docintake.classification.classifier import DocumentClassifier
from docintake.config.settings import Settings
from docintake.database.repositories.documents_repository import DocumentsRepository
from docintake.database.repositories.extracted_data_repository import ExtractedDataRepository
from docintake.extraction.direct_text import DirectTextExtractor
from docintake.extraction.multimodal import MultimodalAllInOneExtractor
from docintake.extraction.ocr_extractor import OpticalCharacterExtractor
from docintake.extraction.orchestrator import ExtractionOrchestrator
from docintake.llm.agent_config import AgentModelConfigs
from docintake.llm.client_base import BaseLlmClient
from docintake.llm.factory import LlmClientFactory
from docintake.metadata.agent import MetadataExtractionAgent
from docintake.metadata.registry import MetadataHandlerRegistry
from docintake.metadata.service import MetadataService
from docintake.ocr.factory import OcrClientFactory
from docintake.pdf.factory import PdfExtractorFactory
from docintake.pipeline.orchestrator import PipelineOrchestrator
from docintake.pipeline.steps import ChunkingStep, ClassificationStep, ExtractionStep, MetadataStep
from docintake.registry.type_registry import TypeRegistry
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy
from docintake.storage.base import BaseBlobSource


def build_type_registry(settings: Settings) -> TypeRegistry:
    """Build the registry and check every listed type has a metadata handler.

    Raises:
        ConfigError: if a registry type has no handler.
    """
    schema_path = settings.document_types_schema_path.strip()
    type_registry = TypeRegistry(Path(schema_path) if schema_path else None)
    MetadataHandlerRegistry().verify(type_registry)
    return type_registry


def build_metadata_service(
    settings: Settings,
    type_registry: TypeRegistry,
    llm_client: BaseLlmClient,
) -> MetadataService:
    return MetadataService(
        type_registry=type_registry,
        handlers=MetadataHandlerRegistry(),
        agent=MetadataExtractionAgent(
            client=llm_client,
            model_config=AgentModelConfigs(settings).for_extraction_agent(),
            retry_policy=RetryPolicy.from_settings(settings),
        ),
        extracted_data=ExtractedDataRepository(
            type_registry, RetryPolicy.from_settings(settings)
        ),
    )


def build_extraction_orchestrator(
    settings: Settings,
    *,
    llm_client: BaseLlmClient,
    metadata: MetadataService,
    documents: DocumentsRepository,
    vocabulary: DocumentTypeVocabulary,
) -> ExtractionOrchestrator:
    retry_policy = RetryPolicy.from_settings(settings)
    return ExtractionOrchestrator(
        [
            DirectTextExtractor(
                PdfExtractorFactory.create(settings.pdf_engine),
                subprocess_timeout_seconds=float(settings.pdf_subprocess_timeout_seconds),
            ),
            OpticalCharacterExtractor(
                OcrClientFactory.create(settings),
                pages_per_batch=settings.ocr_pages_per_batch,
                max_pages=settings.ocr_max_pages,
                retry_policy=retry_policy,
            ),
            MultimodalAllInOneExtractor(
                client=llm_client,
                model_config=AgentModelConfigs(settings).for_extraction_agent(),
                metadata=metadata,
                documents=documents,
                vocabulary=vocabulary,
                max_bytes=settings.all_in_one_max_bytes,
                retry_policy=retry_policy,
            ),
        ]
    )


def build_pipeline(settings: Settings, blob_source: BaseBlobSource) -> PipelineOrchestrator:
    """Build a PipelineOrchestrator with all required adapters."""
    type_registry = build_type_registry(settings)
    vocabulary = DocumentTypeVocabulary()
    llm_client = LlmClientFactory.create(settings)
    documents = DocumentsRepository(RetryPolicy.from_settings(settings))
    metadata = build_metadata_service(settings, type_registry, llm_client)
    extraction = build_extraction_orchestrator(
        settings,
        llm_client=llm_client,
        metadata=metadata,
        documents=documents,
        vocabulary=vocabulary,
    )
    classifier = DocumentClassifier(
        type_registry=type_registry,
        vocabulary=vocabulary,
        llm_client=llm_client,
        model_config=AgentModelConfigs(settings).for_classifier(),
        retry_policy=RetryPolicy.from_settings(settings),
    )
    return PipelineOrchestrator(
        documents,
        [
            ExtractionStep(
                documents,
                blob_source,
                extraction,
                min_text_length=settings.min_text_length,
                max_pages=settings.max_all_in_one_pages,
            ),
            ClassificationStep(documents, classifier),
            MetadataStep(documents, metadata),
            ChunkingStep(documents),
        ],
    )


def build_boundary_detector(settings: Settings) -> MultiDocumentBoundaryDetector:
    """Build a detector for local files; it needs no database."""
    type_registry = build_type_registry(settings)
    vocabulary = DocumentTypeVocabulary()
    llm_client = LlmClientFactory.create(settings)
    extraction = build_extraction_orchestrator(
        settings,
        llm_client=llm_client,
        metadata=build_metadata_service(settings, type_registry, llm_client),
        documents=DocumentsRepository(RetryPolicy.from_settings(settings)),
        vocabulary=vocabulary,
    )
    return MultiDocumentBoundaryDetector(
        extraction=extraction,
        llm_client=llm_client,
        model_config=AgentModelConfigs(settings).for_boundary_analysis(),
        type_registry=type_registry,
        vocabulary=vocabulary,
        max_chars=settings.boundary_max_chars,
        marker_line_tolerance=settings.marker_line_tolerance,
        min_text_length=settings.min_text_length,
        max_pages=settings.max_all_in_one_pages,
        retry_policy=RetryPolicy.from_settings(settings),
    )
