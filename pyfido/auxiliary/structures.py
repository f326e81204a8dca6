from collections import namedtuple

import numpy as np


UNASSIGNED = -1.
DEFAULT_GAMMA = 0.5


class FidoError(Exception):
    """Exception raised for errors in pyfido library.

    Attributes
    ----------
    message : str
        Error message.
    """

    def __init__(self, msg, *values):
        self.message = msg
        self.values = values

    def __str__(self):
        if not self.values:
            return "pyfido error, message: %s" % (repr(self.message),)
        else:
            return "pyfido error, message: %s %r" % (repr(self.message), self.values)


class ModelParameters(namedtuple('ModelParameters', ('alpha', 'beta', 'gamma'))):
    """The triple of model parameters. `alpha` and `beta` may be
    :py:const:`UNASSIGNED`."""
    __slots__ = ()

    def __new__(cls, alpha=UNASSIGNED, beta=UNASSIGNED, gamma=DEFAULT_GAMMA):
        return super(ModelParameters, cls).__new__(cls, alpha, beta, gamma)

    @property
    def assigned(self):
        return self.alpha != UNASSIGNED and self.beta != UNASSIGNED


class RealRange(namedtuple('RealRange', ('low', 'step', 'high'))):
    """An inclusive range of floats. ``RealRange(x, 1, x)`` contains only `x`."""
    __slots__ = ()

    def values(self):
        if self.low == self.high:
            return np.array([float(self.low)])
        if self.step <= 0 or self.high < self.low:
            raise FidoError('Invalid range', tuple(self))
        # half a step of tolerance keeps `high` in despite accumulated rounding
        return np.round(np.arange(self.low, self.high + self.step / 2., self.step), 10)


class GridPoint(namedtuple('GridPoint', ('alpha', 'beta', 'objective',
        'true_positives', 'false_positives'))):
    """A cell of the (alpha, beta) search grid. `objective` is :py:const:`None`
    until the cell has been evaluated."""
    __slots__ = ()

    def __new__(cls, alpha, beta, objective=None, true_positives=(), false_positives=()):
        return super(GridPoint, cls).__new__(cls, alpha, beta, objective,
                tuple(true_positives), tuple(false_positives))

    def evaluated(self, objective, true_positives, false_positives):
        return self._replace(objective=objective, true_positives=tuple(true_positives),
                false_positives=tuple(false_positives))


def strictly_greater(candidate, best):
    """Default ordering policy: a higher objective wins, ties keep `best`."""
    return candidate > best


def is_better(candidate, best, policy=strictly_greater):
    """Compare two evaluated :py:class:`GridPoint` objects with `policy`.

    Parameters
    ----------
    candidate, best : GridPoint
        Both must have been evaluated.
    policy : callable, optional
        Called with the two objective values. Default is :py:func:`strictly_greater`.

    Returns
    -------
    out : bool
    """
    if candidate.objective is None or best.objective is None:
        raise FidoError('Cannot compare grid points that were not evaluated',
                (candidate.alpha, candidate.beta), (best.alpha, best.beta))
    return bool(policy(candidate.objective, best.objective))


class InferenceOutput(object):
    """Ranked protein groups with their PEPs and q-values.

    Attributes
    ----------
    peps : numpy.ndarray
        Group probabilities, sorted in descending order.
    protein_ids : list of tuple of str
        Member protein identifiers of each group, in the same order.
    qvalues : numpy.ndarray
        Running mean of `peps`.
    """

    def __init__(self, peps, protein_ids, qvalues):
        if not len(peps) == len(protein_ids) == len(qvalues):
            raise FidoError('Output arrays differ in length',
                    len(peps), len(protein_ids), len(qvalues))
        self.peps = np.asarray(peps, dtype=np.float64)
        self.protein_ids = [tuple(ids) for ids in protein_ids]
        self.qvalues = np.asarray(qvalues, dtype=np.float64)

    def __len__(self):
        return self.peps.size

    def __getitem__(self, k):
        return self.peps[k], self.protein_ids[k], self.qvalues[k]

    def __iter__(self):
        return zip(self.peps, self.protein_ids, self.qvalues)

    def __repr__(self):
        return '{}({} protein groups)'.format(type(self).__name__, len(self))
