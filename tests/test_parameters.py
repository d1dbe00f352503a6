import datetime as dt
import decimal

import pytest
from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, text

from dbscript.parameters import (
    get_boolean_parameter,
    get_datetime_parameter,
    get_decimal_parameter,
    get_int32_parameter,
    get_output_int32_parameter,
    get_output_string_parameter,
    get_string_parameter,
)


@pytest.mark.parametrize(
    "factory, value, type_",
    [
        (get_string_parameter, "Books", String),
        (get_int32_parameter, 42, Integer),
        (get_boolean_parameter, True, Boolean),
        (get_decimal_parameter, decimal.Decimal("9.99"), Numeric),
        (get_datetime_parameter, dt.datetime(2024, 5, 1, 12, 30), DateTime),
    ],
)
def test_typed_parameter(factory, value, type_):
    param = factory("p", value)

    assert param.key == "p"
    assert param.value == value
    assert isinstance(param.type, type_)
    assert not param.isoutparam


def test_none_becomes_null():
    param = get_int32_parameter("storeId", None)

    assert param.value is None
    assert not param.required


@pytest.mark.parametrize(
    "factory, type_",
    [(get_output_string_parameter, String), (get_output_int32_parameter, Integer)],
)
def test_output_parameter(factory, type_):
    param = factory("TotalRecords")

    assert param.isoutparam
    assert isinstance(param.type, type_)


def test_parameter_name_is_required():
    with pytest.raises(ValueError):
        get_string_parameter("", "x")


def test_parameters_bind_into_statements(engine):
    stmt = text("SELECT :name, :qty").bindparams(
        get_string_parameter("name", "pen"), get_int32_parameter("qty", 3)
    )
    with engine.connect() as conn:
        assert tuple(conn.execute(stmt).one()) == ("pen", 3)
