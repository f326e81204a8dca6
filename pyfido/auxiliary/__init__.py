from .structures import (
    FidoError, UNASSIGNED, DEFAULT_GAMMA,
    ModelParameters, RealRange, GridPoint, InferenceOutput,
    strictly_greater, is_better)

from .file_helpers import _file_obj, _file_writer

from .target_decoy import (
    LAMBDA, FDR_THRESHOLD, ROC_N,
    qvalues, is_monotonic, fdr_curves, mse_fdr, roc, roc_n, objective)
