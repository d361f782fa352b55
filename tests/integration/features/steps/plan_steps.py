"""Step definitions for plan integration scenarios."""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, Optional

from behave import given, then, when

_PLAN_TEMPLATE: Dict[str, Any] = {
    "planCostShares": {
        "deductible": 2000,
        "_org": "example.com",
        "copay": 23,
        "objectId": "it-costshare-1",
        "objectType": "membercostshare",
    },
    "linkedPlanServices": [],
    "_org": "example.com",
    "objectType": "plan",
    "planType": "inNetwork",
    "creationDate": "12-12-2017",
}


def _interpolate(value: str, context) -> str:
    return re.sub(r"\{(\w+)\}", lambda m: str(context.vars.get(m.group(1), m.group(0))), value)


def _unescape(value: str) -> str:
    return value.replace('\\"', '"')


def _request(context, method: str, path: str, headers: Optional[Dict[str, str]] = None, json_body: Any = None):
    context.last_response = context.client.request(method, path, headers=headers or {}, json=json_body)
    return context.last_response


@given('a plan document with objectId "{object_id}"')
def step_plan_document(context, object_id: str):
    plan = copy.deepcopy(_PLAN_TEMPLATE)
    plan["objectId"] = object_id
    context.plan = plan


@when("I POST the plan document")
def step_post_plan(context):
    _request(context, "POST", "/", json_body=context.plan)


# Header variants are registered first; the bare forms would also match them
@when('I GET "{path}" with header "{name}" set to "{value}"')
def step_get_with_header(context, path: str, name: str, value: str):
    _request(context, "GET", _interpolate(path, context), headers={name: _unescape(_interpolate(value, context))})


@when('I GET "{path}"')
def step_get(context, path: str):
    _request(context, "GET", _interpolate(path, context))


@when('I DELETE "{path}" with header "{name}" set to "{value}"')
def step_delete_with_header(context, path: str, name: str, value: str):
    _request(context, "DELETE", _interpolate(path, context), headers={name: _unescape(_interpolate(value, context))})


@when('I DELETE "{path}"')
def step_delete(context, path: str):
    _request(context, "DELETE", _interpolate(path, context))


@when('I capture the "{header}" header as "{var_name}"')
@then('I capture the "{header}" header as "{var_name}"')
def step_capture_header(context, header: str, var_name: str):
    value = context.last_response.headers.get(header)
    assert value, f"Response has no {header} header"
    context.vars[var_name] = value


@then("the response status is {status:d}")
def step_status(context, status: int):
    actual = context.last_response.status_code
    assert actual == status, f"Expected {status}, got {actual}: {context.last_response.text}"


@then('the "{header}" header equals "{value}"')
def step_header_equals(context, header: str, value: str):
    expected = _interpolate(value, context)
    actual = context.last_response.headers.get(header)
    assert actual == expected, f"Expected {header}={expected!r}, got {actual!r}"
