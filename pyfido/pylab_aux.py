"""
pylab_aux - auxiliary functions for plotting with pylab
=======================================================

This module serves as a collection of useful routines for data plotting with
matplotlib.

FDR control
-----------

  :py:func:`plot_qvalue_curve` - plot the dependence of q-value on the number of
  protein groups.

  :py:func:`plot_fdr_curves` - plot estimated against empirical FDR.

  :py:func:`plot_roc` - plot a ROC curve with the ROC\\ :sub:`n` region marked.

Parameter search
----------------

  :py:func:`plot_grid_search` - make a contour plot of the objective function
  over the (alpha, beta) grid.

Dependencies
------------

This module requires :py:mod:`matplotlib`.

-------------------------------------------------------------------------------

"""

#   Copyright 2012 Anton Goloborodko, Lev Levitsky
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

import pylab
import numpy as np
from .auxiliary import FidoError, ROC_N


def plot_qvalue_curve(qvalues, *args, **kwargs):
    """
    Plot a curve with q-values on the X axis and corresponding protein group
    number (starting with ``1``) on the Y axis.

    Parameters
    ----------
    qvalues : array-like
        An array of q-values for ranked protein groups.
    xlabel : str, keyword only, optional
        Label for the X axis. Default is "q-value".
    ylabel : str, keyword only, optional
        Label for the Y axis. Default is "# of protein groups".
    title : str, keyword only, optional
        The title. Empty by default.
    *args
        Given to :py:func:`pylab.plot` after `x` and `y`.
    **kwargs
        Given to :py:func:`pylab.plot`.

    Returns
    -------
    out : matplotlib.lines.Line2D
    """
    qvalues = np.asarray(qvalues)
    pylab.xlabel(kwargs.pop('xlabel', 'q-value'))
    pylab.ylabel(kwargs.pop('ylabel', '# of protein groups'))
    pylab.title(kwargs.pop('title', ''))
    return pylab.plot(qvalues, 1 + np.arange(qvalues.size), *args, **kwargs)


def plot_fdr_curves(estimated, empirical, *args, **kwargs):
    """Plot empirical FDR (Y axis) against estimated FDR (X axis), with
    the diagonal of perfect calibration.

    Parameters
    ----------
    estimated, empirical : array-like
        The FDR curves, as returned by :py:func:`pyfido.auxiliary.fdr_curves`.
    threshold : float, keyword only, optional
        If given, a vertical line is drawn at this estimated FDR.
    xlabel, ylabel, title : str, keyword only, optional
        Axis labels and the title.
    **kwargs
        Given to :py:func:`pylab.plot`.

    Returns
    -------
    out : list of matplotlib.lines.Line2D
    """
    estimated = np.asarray(estimated)
    empirical = np.asarray(empirical)
    if estimated.shape != empirical.shape:
        raise FidoError('FDR curves differ in length', estimated.size, empirical.size)
    pylab.xlabel(kwargs.pop('xlabel', 'estimated FDR'))
    pylab.ylabel(kwargs.pop('ylabel', 'empirical FDR'))
    pylab.title(kwargs.pop('title', ''))
    threshold = kwargs.pop('threshold', None)
    lines = pylab.plot(estimated, empirical, *args, **kwargs)
    top = max(estimated.max(initial=0), empirical.max(initial=0))
    lines += pylab.plot([0, top], [0, top], 'k--', linewidth=0.5)
    if threshold is not None:
        pylab.axvline(threshold, color='grey', linestyle=':')
    return lines


def plot_roc(fps, tps, *args, **kwargs):
    """Plot a ROC curve (true positives vs false positives).

    Parameters
    ----------
    fps, tps : array-like
        The curve, as returned by :py:func:`pyfido.auxiliary.roc`.
    n : int, keyword only, optional
        The region up to `n` false positives is shaded. Default is 50.
    xlabel, ylabel, title : str, keyword only, optional
        Axis labels and the title.
    **kwargs
        Given to :py:func:`pylab.plot`.

    Returns
    -------
    out : list of matplotlib.lines.Line2D
    """
    fps = np.asarray(fps)
    tps = np.asarray(tps)
    n = kwargs.pop('n', ROC_N)
    pylab.xlabel(kwargs.pop('xlabel', 'false positives'))
    pylab.ylabel(kwargs.pop('ylabel', 'true positives'))
    pylab.title(kwargs.pop('title', ''))
    lines = pylab.plot(fps, tps, *args, **kwargs)
    pylab.axvspan(0, n, alpha=0.1, color='grey')
    return lines


def plot_grid_search(history, **kwargs):
    """Make a contour plot of objective function values from a grid search.

    Parameters
    ----------
    history : iterable of (alpha, beta, objective)
        E.g. :py:attr:`pyfido.estimator.ProteinProbEstimator.search_history`.
        Both parameters must have been varied.
    filling : bool
        Fill contours if True (default).
    num_contours : int
        The number of contours to plot, 20 by default.
    xlabel, ylabel : str, optional
        The axes labels. Default are "alpha" and "beta".
    title : str, optional
        The title. Empty by default.
    **kwargs
        Passed to :py:func:`pylab.contour` or :py:func:`pylab.contourf`.
    """
    values = {(a, b): v for a, b, v in history}
    x = sorted({a for a, _ in values})
    y = sorted({b for _, b in values})
    if len(x) < 2 or len(y) < 2:
        raise FidoError('Need at least two values of each parameter', len(x), len(y))
    pylab.xlabel(kwargs.pop('xlabel', 'alpha'))
    pylab.ylabel(kwargs.pop('ylabel', 'beta'))
    pylab.title(kwargs.pop('title', ''))
    X, Y = np.meshgrid(x, y)
    Z = np.array([[values.get((a, b), np.nan) for a in x] for b in y])
    num_contours = kwargs.pop('num_contours', 20)
    if kwargs.pop('filling', True):
        return pylab.contourf(X, Y, Z, num_contours,
                cmap=kwargs.pop('cmap', pylab.cm.viridis), **kwargs)
    else:
        return pylab.contour(X, Y, Z, num_contours,
                cmap=kwargs.pop('cmap', pylab.cm.viridis), **kwargs)
