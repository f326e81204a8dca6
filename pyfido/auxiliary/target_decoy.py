import numpy as np

from .structures import FidoError

LAMBDA = 0.15
FDR_THRESHOLD = 0.1
ROC_N = 50


def qvalues(peps):
    """Calculate q-values as the running mean of PEPs.

    Parameters
    ----------
    peps : array-like of float
        PEPs of protein groups, already in rank order.

    Returns
    -------
    out : numpy.ndarray
        ``out[k] = mean(peps[:k + 1])``.
    """
    peps = np.asarray(peps, dtype=np.float64)
    return peps.cumsum() / np.arange(1., peps.size + 1.)


def is_monotonic(values):
    """Check that `values` never change direction."""
    diff = np.diff(np.asarray(values, dtype=np.float64))
    return bool((diff >= 0).all() or (diff <= 0).all())


def _group_flags(protein_ids, proteins):
    """Boolean array: does any member of each group belong to `proteins`?"""
    proteins = set(proteins)
    return np.array([any(p in proteins for p in group) for group in protein_ids], dtype=np.bool_)


def fdr_curves(output, false_positives):
    """Calculate estimated and empirical FDR for each rank of `output`.

    Parameters
    ----------
    output : InferenceOutput
        Ranked protein groups.
    false_positives : iterable of str
        Proteins known to be false (decoy-supported). A group is false
        if any of its members is.

    Returns
    -------
    out : tuple of numpy.ndarray
        ``(estimated, empirical)``: the q-values and the fraction of false
        groups among the top `k + 1` ones.
    """
    estimated = np.array(output.qvalues, dtype=np.float64)
    isfalse = _group_flags(output.protein_ids, false_positives)
    empirical = isfalse.cumsum(dtype=np.float64) / np.arange(1., isfalse.size + 1.)
    return estimated, empirical


def mse_fdr(estimated, empirical, threshold=FDR_THRESHOLD):
    """Mean squared difference between the two FDR curves over the ranks
    where the estimated FDR does not exceed `threshold`.

    Returns exactly 0.0 if no rank qualifies.
    """
    estimated = np.asarray(estimated, dtype=np.float64)
    empirical = np.asarray(empirical, dtype=np.float64)
    if estimated.shape != empirical.shape:
        raise FidoError('FDR curves differ in length', estimated.size, empirical.size)
    mask = estimated <= threshold
    if not mask.any():
        return 0.0
    return float(np.mean((estimated[mask] - empirical[mask]) ** 2))


def roc(output, true_positives, false_positives):
    """Build a ROC curve (false positives vs true positives) for `output`.

    The curve starts at (0, 0). Groups with equal PEPs are added as one block,
    so the curve does not depend on their order. A group counts as true if any
    of its members is a true positive and as false if any of its members is
    a false positive; it may count as both.

    Returns
    -------
    out : tuple of numpy.ndarray
        ``(fps, tps)``, cumulative counts, of equal length.
    """
    istrue = _group_flags(output.protein_ids, true_positives).astype(np.int64)
    isfalse = _group_flags(output.protein_ids, false_positives).astype(np.int64)
    peps = output.peps
    tps_all = istrue.cumsum()
    fps_all = isfalse.cumsum()
    # last index of each block of tied PEPs
    ends = [k for k in range(peps.size) if k == peps.size - 1 or peps[k] != peps[k + 1]]
    fps = np.concatenate(([0], fps_all[ends])).astype(np.int64)
    tps = np.concatenate(([0], tps_all[ends])).astype(np.int64)
    return fps, tps


def _area(x1, y1, x2, y2, max_x):
    """Area under the straight line through (x1, y1) and (x2, y2) from `x1`
    to ``min(x2, max_x)``."""
    m = (y2 - y1) / float(x2 - x1)
    b = y1 - m * x1
    x_end = min(max_x, x2)

    def antiderivative(x):
        return m * x * x / 2. + b * x
    return antiderivative(x_end) - antiderivative(x1)


def roc_n(fps, tps, n=ROC_N):
    """Calculate the ROC\\ :sub:`n` score: the area under the ROC curve up to
    `n` false positives, normalized by ``n * tps[-1]``.

    The curve is integrated with the trapezoidal rule. Vertical segments do
    not add area. If the curve ends before `n` false positives, it is extended
    horizontally up to `n`.

    Parameters
    ----------
    fps, tps : array-like of int
        Cumulative counts, as returned by :py:func:`roc`.
    n : int, optional
        Maximum number of false positives. Default is 50.

    Returns
    -------
    out : float
        A value between 0 and 1. 0 if there are no true positives.
    """
    fps = np.asarray(fps, dtype=np.float64)
    tps = np.asarray(tps, dtype=np.float64)
    if fps.size != tps.size or not fps.size:
        raise FidoError('Invalid ROC curve', fps.size, tps.size)
    if n <= 0:
        raise FidoError('`n` must be positive', n)
    if tps[-1] == 0:
        return 0.0
    if fps[-1] < n:
        fps = np.append(fps, n)
        tps = np.append(tps, tps[-1])
    area = 0.
    for k in range(fps.size - 1):
        if fps[k] >= n:
            break
        if fps[k] != fps[k + 1]:
            area += _area(fps[k], tps[k], fps[k + 1], tps[k + 1], n)
    return area / (n * tps[-1])


def objective(mse, roc50, lambda_=LAMBDA):
    """Combined objective ``(1 - lambda_) * mse - lambda_ * roc50``.
    The grid search keeps the cell where this value is the largest."""
    return (1. - lambda_) * mse - lambda_ * roc50
