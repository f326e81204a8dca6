"""
output - ranked protein groups and their export
===============================================

Summary
-------

The inference engine reports one probability per protein group, in no
particular order. This module turns such raw arrays into an
:py:class:`~pyfido.auxiliary.InferenceOutput`: groups ranked by descending
probability and annotated with *q*-values. It also writes the ranked output
as plain text or as a protein XML fragment, or converts it to a
:py:class:`pandas.DataFrame`.

Building the output
-------------------

  :py:func:`build_output` - sort raw probabilities and calculate *q*-values.

Export
------

  :py:func:`write` - write one line per protein group: PEP and group members.

  :py:func:`format_line` - the text form of one protein group, as written by
  :py:func:`write` and logged by the estimator.

  :py:func:`write_xml` - append a ``<proteins>`` element with one ``<protein>``
  per member of each group, with PEP, *q*-value and supporting peptides.

  :py:func:`DataFrame` - convert the output to a :py:class:`pandas.DataFrame`.

Dependencies
------------

This module requires :py:mod:`numpy` and :py:mod:`lxml`.
:py:func:`DataFrame` requires :py:mod:`pandas`.

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

import numpy as np
from lxml import etree

from . import auxiliary as aux

XML_NAMESPACE = 'http://per-colator.com/percolator_out/15'
GROUP_SEPARATOR = ','


def format_value(value):
    """Format a PEP or *q*-value with 8 significant digits."""
    return '%.8g' % value


def format_line(pep, protein_ids):
    """Return the text representation of a protein group, without a newline."""
    return '{} {}'.format(format_value(pep), GROUP_SEPARATOR.join(protein_ids))


def build_output(probabilities, group_names):
    """Rank protein groups by probability and calculate *q*-values.

    Parameters
    ----------
    probabilities : array-like of float
        One value per protein group. Must not be empty.
    group_names : sequence of sequences of str
        Member proteins of each group, in the same order as `probabilities`.

    Returns
    -------
    out : InferenceOutput
        Groups sorted by descending probability. The sort is stable, so groups
        with equal probabilities keep their original order. The *q*-value at
        rank `k` is the mean of the top ``k + 1`` probabilities.
    """
    probabilities = np.asarray(probabilities, dtype=np.float64)
    if not probabilities.size:
        raise aux.FidoError('Cannot build output from an empty probability array')
    if probabilities.size != len(group_names):
        raise aux.FidoError('Probabilities and group names differ in length',
                probabilities.size, len(group_names))
    invalid = ~(np.isfinite(probabilities) & (probabilities >= 0) & (probabilities <= 1))
    if invalid.any():
        raise aux.FidoError('Probabilities must be finite and within [0, 1]',
                probabilities[invalid].tolist())
    order = np.argsort(-probabilities, kind='stable')
    peps = probabilities[order]
    protein_ids = [tuple(group_names[i]) for i in order]
    qvalues = aux.qvalues(peps)
    if not aux.is_monotonic(qvalues):
        raise aux.FidoError('q-values are not monotonic')
    return aux.InferenceOutput(peps, protein_ids, qvalues)


@aux._file_writer()
def write(result, output=None):
    """
    Write ranked protein groups as text, one group per line::

        <PEP> <protein>[,<protein>...]

    Parameters
    ----------
    result : InferenceOutput
        The output to write.
    output : file-like or str, optional
        A file open for writing or a path to write to. Default is
        :py:const:`None`, which means write to standard output.
    file_mode : str, keyword only, optional
        If `output` is a file name, defines the mode the file will be opened in.
        Otherwise will be ignored. Default is `'w'`.

    Returns
    -------
    output_file : file object
        The file where the output is written.
    """
    for pep, protein_ids, _ in result:
        output.write(format_line(pep, protein_ids) + '\n')
    return output.file


def _protein_element(parent, protein_id, pep, qvalue, index):
    records = index.get(protein_id)
    if records is None:
        raise aux.FidoError('Protein is missing from the association index', protein_id)
    protein = etree.SubElement(parent, 'protein')
    protein.set('{%s}protein_id' % XML_NAMESPACE, protein_id)
    etree.SubElement(protein, 'pep').text = format_value(pep)
    etree.SubElement(protein, 'q_value').text = format_value(qvalue)
    for record in records:
        etree.SubElement(protein, 'peptide_seq', seq=record.sequence)
    return protein


@aux._file_writer('a')
def write_xml(result, output=None, index=None):
    """
    Append a ``<proteins>`` element to an XML document that is being written.

    Every member of every protein group gets a ``<protein>`` element with the
    PEP and *q*-value of its group and a ``<peptide_seq>`` element for each
    peptide associated with it in `index`.

    Parameters
    ----------
    result : InferenceOutput
        The output to write.
    output : file-like or str, optional
        A file open for writing or a path to write to. Default is
        :py:const:`None`, which means write to standard output.
    index : AssociationIndex
        Supplies the peptides of each protein.
    file_mode : str, keyword only, optional
        If `output` is a file name, defines the mode the file will be opened in.
        Otherwise will be ignored. Default is `'a'`.

    Returns
    -------
    output_file : file object
        The file where the output is written.
    """
    if index is None:
        raise aux.FidoError('`index` is required to write peptides of proteins')
    root = etree.Element('proteins', nsmap={'p': XML_NAMESPACE})
    for pep, protein_ids, qvalue in result:
        for protein_id in protein_ids:
            _protein_element(root, protein_id, pep, qvalue, index)
    output.write(etree.tostring(root, pretty_print=True, encoding='unicode'))
    output.write('\n')
    return output.file


def DataFrame(result, index=None, **kwargs):
    """Convert ranked protein groups into a :py:class:`pandas.DataFrame`.

    Requires :py:mod:`pandas`.

    Parameters
    ----------
    result : InferenceOutput
        The output to convert.
    index : AssociationIndex, optional
        If given, a ``'max peptides'`` column is added with the largest number of
        distinct peptides supporting a member of each group.
    sep : str or None, optional
        If a :py:class:`str`, group members are packed into a single string using
        this delimiter. If :py:const:`None`, they are kept as tuples. Default is
        :py:const:`None`.
    pd_kwargs : dict, optional
        Keyword arguments passed to the :py:class:`pandas.DataFrame` constructor.

    Returns
    -------
    out : pandas.DataFrame
    """
    import pandas as pd
    sep = kwargs.pop('sep', None)
    pd_kwargs = kwargs.pop('pd_kwargs', {})
    data = {
        'protein group': [ids if sep is None else sep.join(ids) for ids in result.protein_ids],
        'PEP': result.peps,
        'q': result.qvalues,
    }
    if index is not None:
        data['max peptides'] = [index.max_peptide_fanout(ids) for ids in result.protein_ids]
    return pd.DataFrame(data, **pd_kwargs)
