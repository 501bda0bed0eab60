import pandas as pd
import pytest
from pydantic import ValidationError

from factor_lab.domain.dto.split_plan import IndexRange, Split
from factor_lab.domain.dto.series_frame import SeriesFrameDTO
from factor_lab.domain.errors import MisalignedInputError


def test_index_range_is_half_open():
    r = IndexRange(start=2, end=5)
    assert len(r) == 3
    assert list(range(10))[r.as_slice()] == [2, 3, 4]
    assert str(r) == "[2,5)"
    with pytest.raises(ValidationError):
        IndexRange(start=3, end=3)


def test_split_requires_contiguous_windows():
    ok = Split(
        split_id="Slice01",
        analysis=IndexRange(start=0, end=6),
        assessment=IndexRange(start=6, end=7),
    )
    assert ok.analysis.end == ok.assessment.start
    with pytest.raises(ValidationError):
        Split(
            split_id="Slice01",
            analysis=IndexRange(start=0, end=6),
            assessment=IndexRange(start=7, end=8),
        )


def test_split_is_frozen():
    s = Split(
        split_id="Slice01",
        analysis=IndexRange(start=0, end=1),
        assessment=IndexRange(start=1, end=2),
    )
    with pytest.raises(ValidationError):
        s.split_id = "Slice02"


def test_series_frame_dto_validates_order():
    dates = pd.date_range("2024-01-31", periods=3, freq="ME")
    dto = SeriesFrameDTO(frame=pd.DataFrame({"date": dates, "x": [1, 2, 3]}))
    assert len(dto) == 3
    assert dto.dates.is_monotonic_increasing

    with pytest.raises(MisalignedInputError):
        SeriesFrameDTO(frame=pd.DataFrame({"date": dates[::-1], "x": [1, 2, 3]}))
    with pytest.raises(MisalignedInputError):
        SeriesFrameDTO(frame=pd.DataFrame({"date": [dates[0], dates[0]], "x": [1, 2]}))
