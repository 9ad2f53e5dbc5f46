"""pdbharvest: harvest PDB structures for ChEMBL targets via UniProt cross-references."""

__version__ = "1.0.0"
