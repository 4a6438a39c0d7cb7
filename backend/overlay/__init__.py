"""
Map overlays for the flight session.

Every resource drawn on the render surface (sources, layers, the eVTOL marker) is
owned by an `OverlayLayerManager` entry so it can be removed as a unit.
"""
