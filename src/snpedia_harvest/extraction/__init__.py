# ABOUTME: Extraction from SNPedia pages: fetch client plus the three content extractors
# ABOUTME: Pipeline Stage 1: rendered HTML and raw wikitext into per-extractor partial results

"""
Extraction Layer: Get partial variant data out of SNPedia pages

This layer handles:
- Fetching rendered HTML and wikitext from the SNPedia API
- Template extraction from wikitext
- Free-text annotation of wikitext
- Structural extraction from rendered HTML

Data Flow: SNPedia API → WikiPage → partial extractions → core merge
"""
