"""
Analyzer - sandboxed execution of static-analysis engines.

Sub-packages:
- analyzer.core: errors, logging, settings
- analyzer.engines: engine registry, configuration entries, installer
- analyzer.execution: container runtimes, executor, bounded runner
- analyzer.listeners: lifecycle observers (logging, metrics)
- analyzer.issues: location rendering for engine findings
"""

__version__ = "0.1.0"
