"""Inbound trigger payloads and the initial context they produce."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, Field


class StripeEvent(BaseModel):
    """The parts of a Stripe webhook event a workflow can use."""

    id: str
    type: str
    created: Optional[int] = None
    livemode: bool = False
    data: dict[str, Any] = {}


class GoogleFormSubmission(BaseModel):
    """Payload posted by the generated Apps Script on form submit."""

    form_id: str = Field(alias="formId")
    form_title: str = Field("", alias="formTitle")
    response_id: str = Field("", alias="responseId")
    timestamp: Optional[str] = None
    respondent_email: Optional[str] = Field(None, alias="respondentEmail")
    responses: dict[str, Any] = {}

    model_config = {"populate_by_name": True}


def stripe_initial_data(event: StripeEvent) -> dict[str, Any]:
    return {
        "stripe": {
            "eventId": event.id,
            "eventType": event.type,
            "timestamp": event.created,
            "livemode": event.livemode,
            "raw": event.data.get("object"),
        }
    }


def google_form_initial_data(submission: GoogleFormSubmission) -> dict[str, Any]:
    return {"googleForm": submission.model_dump(by_alias=True)}


def generate_google_form_script(webhook_url: str) -> str:
    """Google Apps Script that posts each form submission to ``webhook_url``.

    The URL is embedded as a JSON string literal so it cannot break out of
    the script.
    """
    return _GOOGLE_FORM_SCRIPT.replace("__WEBHOOK_URL__", json.dumps(webhook_url))


_GOOGLE_FORM_SCRIPT = """\
function onFormSubmit(e) {
  var formResponse = e.response;
  var itemResponses = formResponse.getItemResponses();

  var responses = {};
  for (var i = 0; i < itemResponses.length; i++) {
    var itemResponse = itemResponses[i];
    responses[itemResponse.getItem().getTitle()] = itemResponse.getResponse();
  }

  var payload = {
    formId: e.source.getId(),
    formTitle: e.source.getTitle(),
    responseId: formResponse.getId(),
    timestamp: formResponse.getTimestamp(),
    respondentEmail: formResponse.getRespondentEmail(),
    responses: responses
  };

  var options = {
    'method': 'post',
    'contentType': 'application/json',
    'payload': JSON.stringify(payload)
  };

  var WEBHOOK_URL = __WEBHOOK_URL__;

  try {
    UrlFetchApp.fetch(WEBHOOK_URL, options);
  } catch(error) {
    console.error('Webhook failed:', error);
  }
}
"""
