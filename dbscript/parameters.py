"""
Typed bind parameters for raw statements and stored procedure calls.

A ``None`` value is sent as SQL ``NULL``.
"""
from __future__ import annotations
import datetime as dt
import decimal
import typing as t

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, bindparam, outparam
from sqlalchemy.sql.elements import BindParameter
from sqlalchemy.types import TypeEngine


def _parameter(type_: TypeEngine, name: str, value: t.Any) -> BindParameter:
    if not name:
        raise ValueError("parameter name is required")
    return bindparam(name, value, type_=type_)


def _output_parameter(type_: TypeEngine, name: str) -> BindParameter:
    if not name:
        raise ValueError("parameter name is required")
    return outparam(name, type_=type_)


def get_string_parameter(name: str, value: str | None) -> BindParameter:
    return _parameter(String(), name, value)


def get_output_string_parameter(name: str) -> BindParameter:
    return _output_parameter(String(), name)


def get_int32_parameter(name: str, value: int | None) -> BindParameter:
    return _parameter(Integer(), name, value)


def get_output_int32_parameter(name: str) -> BindParameter:
    return _output_parameter(Integer(), name)


def get_boolean_parameter(name: str, value: bool | None) -> BindParameter:
    return _parameter(Boolean(), name, value)


def get_decimal_parameter(name: str, value: decimal.Decimal | None) -> BindParameter:
    return _parameter(Numeric(asdecimal=True), name, value)


def get_datetime_parameter(name: str, value: dt.datetime | None) -> BindParameter:
    return _parameter(DateTime(), name, value)
