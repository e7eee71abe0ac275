from .expander import MatrixCell, expand_config, expand_matrix, select_cells
from .host import host_family

__all__ = ["MatrixCell", "expand_config", "expand_matrix", "host_family", "select_cells"]
