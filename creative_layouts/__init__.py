"""
Layout generation and multi-format export for brand creatives.

Modules:
- core: request loading and pipeline orchestration
- channels: channel specification registry
- assets: asset prioritization and source lookup
- styles / composer: style policies and layout composition
- judgment / heuristics: pluggable scoring strategies
- compliance / performance: scorers with local fallbacks
- render / export: raster, vector, document and video exports
- batch / presets: batch and project exports, preset packs
"""
