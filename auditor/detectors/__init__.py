from auditor.detectors.structure import StructureAnalyzer, analyze_document, collect_page_info

__all__ = ["StructureAnalyzer", "analyze_document", "collect_page_info"]
