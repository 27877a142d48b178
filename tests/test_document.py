import pytest

from conftest import SAMPLE_MEI
from file_model.document import DocumentParseError, ScoreDocument


@pytest.fixture
def doc():
    return ScoreDocument.from_text(SAMPLE_MEI, 'mem://score.mei')


def test_structure_in_document_order(doc):
    assert [m.get('label') for m in doc.movements()] == ['Allegro', 'Adagio']
    assert len(list(doc.measures())) == 5
    first = next(doc.movements())
    assert len(list(doc.measures(first))) == 3


def test_find_by_id(doc):
    el = doc.find_by_id('b2')
    assert el is not None and el.get('n') == '2'
    assert doc.find_by_id('nope') is None


def test_category_ids_first_seen_order(doc):
    assert doc.category_ids() == ['cat-harmony', 'cat-form']


def test_annotations(doc):
    by_id = {a.annot_id: a for a in doc.annotations()}
    assert by_id['an1'].category == 'cat-harmony'
    assert by_id['an2'].measure_refs == ['a1', 'a2']
    assert by_id['an3'].category is None
    assert by_id['an4'].positioned
    # An annot inside a measure attaches to it
    assert by_id['an5'].measure_refs == ['b1']
    assert by_id['an5'].category == 'cat-form'


def test_bare_tags_are_accepted():
    doc = ScoreDocument.from_text('<mei><mdiv label="One"><measure id="m1" n="1"/></mdiv></mei>')
    assert [m.get('id') for m in doc.measures()] == ['m1']


def test_malformed_text_raises():
    with pytest.raises(DocumentParseError):
        ScoreDocument.from_text('<mei><music>', 'mem://broken.mei')
