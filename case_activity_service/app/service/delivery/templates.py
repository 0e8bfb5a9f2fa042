"""
Built-in email templates and the placeholder renderer.

Templates use ``{{variable}}`` placeholders and ``{{#if variable}}...{{/if}}``
conditional blocks. Rendering is total: unknown placeholders render blank and a
conditional whose variable is falsy or missing renders to an empty string.
"""
import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

_CONDITIONAL_BLOCK = re.compile(r"\{\{#if\s+(\w+)\s*\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render(text: str, variables: Optional[Mapping[str, Any]] = None) -> str:
    variables = variables or {}

    def _conditional(match: re.Match) -> str:
        return match.group(2) if variables.get(match.group(1)) else ""

    def _placeholder(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_placeholder, _CONDITIONAL_BLOCK.sub(_conditional, text))


class EmailTemplateContent(BaseModel):
    subject: str
    html: str


class BuiltinTemplate(BaseModel):
    template_key: str
    name: str
    description: str
    subject: str
    html: str
    variables: List[str] = Field(default_factory=list)


_WRAPPER_OPEN = '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
_BOX_OPEN = '<div style="background: #f7fafc; padding: 16px; border-radius: 8px; margin: 16px 0;">'
_BUTTON = (
    '<a href="{{portalUrl}}" style="display: inline-block; background: #2b6cb0; color: white; '
    'padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 8px 0;">%s</a>'
)
_SIGNATURE = '<p style="margin-top: 24px;">Best regards,<br/>{{firmName}}</p>\n</div>'


def _template(key: str, name: str, description: str, subject: str, body: str, variables: List[str]) -> BuiltinTemplate:
    return BuiltinTemplate(
        template_key=key,
        name=name,
        description=description,
        subject=subject,
        html=f"{_WRAPPER_OPEN}\n{body}\n{_SIGNATURE}",
        variables=["firmName", "portalUrl"] + variables,
    )


BUILTIN_TEMPLATES: Dict[str, BuiltinTemplate] = {t.template_key: t for t in [
    _template(
        "case_submitted", "Case Submitted", "Sent to the client when a new case is submitted.",
        "New Case Submitted: {{caseNumber}}",
        f"""  <h2 style="color: #1a365d;">New Case Submitted</h2>
  <p>Hello {{{{clientName}}}},</p>
  <p>Your case has been successfully submitted to our system.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Case Number:</strong> {{{{caseNumber}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Title:</strong> {{{{caseTitle}}}}</p>
    {{{{#if lawyerName}}}}<p style="margin: 8px 0 0;"><strong>Your Attorney:</strong> {{{{lawyerName}}}}</p>{{{{/if}}}}
  </div>
  <p>Our team will review your case and get back to you shortly.</p>
  {_BUTTON % "Track Your Case"}""",
        ["clientName", "caseNumber", "caseTitle", "lawyerName"],
    ),
    _template(
        "case_status_changed", "Case Status Changed", "Sent to the client when the case status changes.",
        "Case Status Update: {{caseNumber}}",
        f"""  <h2 style="color: #1a365d;">Case Status Update</h2>
  <p>Hello {{{{clientName}}}},</p>
  <p>The status of your case has been updated.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Case Number:</strong> {{{{caseNumber}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Title:</strong> {{{{caseTitle}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Previous Status:</strong> {{{{oldStatus}}}}</p>
    <p style="margin: 8px 0 0;"><strong>New Status:</strong> <span style="color: #2b6cb0; font-weight: bold;">{{{{newStatus}}}}</span></p>
  </div>
  <p>Log in to your portal to view more details:</p>
  {_BUTTON % "View Case"}""",
        ["clientName", "caseNumber", "caseTitle", "oldStatus", "newStatus"],
    ),
    _template(
        "new_message", "New Message", "Sent to the other party when a message is posted on a case.",
        "New Message on Case {{caseNumber}}",
        f"""  <h2 style="color: #1a365d;">New Message Received</h2>
  <p>Hello {{{{recipientName}}}},</p>
  <p>You have received a new message from <strong>{{{{senderName}}}}</strong> regarding your case.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Case:</strong> {{{{caseNumber}}}} - {{{{caseTitle}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Message Preview:</strong></p>
    <p style="margin: 8px 0 0; color: #4a5568; font-style: italic;">"{{{{messagePreview}}}}..."</p>
  </div>
  <p>Log in to your portal to view and respond:</p>
  {_BUTTON % "View Message"}""",
        ["recipientName", "senderName", "caseNumber", "caseTitle", "messagePreview"],
    ),
    _template(
        "document_uploaded", "Document Uploaded", "Sent when a document is added to a case.",
        "New Document Uploaded: {{caseNumber}}",
        f"""  <h2 style="color: #1a365d;">New Document Uploaded</h2>
  <p>Hello {{{{recipientName}}}},</p>
  <p>A new document has been uploaded by <strong>{{{{uploaderName}}}}</strong>.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Case:</strong> {{{{caseNumber}}}} - {{{{caseTitle}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Document:</strong> {{{{documentName}}}}</p>
  </div>
  {_BUTTON % "View Document"}""",
        ["recipientName", "uploaderName", "caseNumber", "caseTitle", "documentName"],
    ),
    _template(
        "lawyer_assigned", "Lawyer Assigned", "Sent to the client when a lawyer is assigned.",
        "Lawyer Assigned to Your Case: {{caseNumber}}",
        f"""  <h2 style="color: #1a365d;">Lawyer Assigned</h2>
  <p>Hello {{{{clientName}}}},</p>
  <p>Good news! A lawyer has been assigned to your case.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Case Number:</strong> {{{{caseNumber}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Title:</strong> {{{{caseTitle}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Assigned Lawyer:</strong> {{{{lawyerName}}}}</p>
  </div>
  <p>Your lawyer will review your case and reach out to you soon.</p>
  {_BUTTON % "View Case"}""",
        ["clientName", "caseNumber", "caseTitle", "lawyerName"],
    ),
    _template(
        "case_assigned_to_lawyer", "Case Assigned To Lawyer", "Sent to a lawyer who receives a case.",
        "New Case Assigned: {{caseNumber}}",
        f"""  <h2 style="color: #1a365d;">New Case Assigned</h2>
  <p>Hello {{{{lawyerName}}}},</p>
  <p>You have been assigned a new {{{{caseType}}}} case.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Case Number:</strong> {{{{caseNumber}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Title:</strong> {{{{caseTitle}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Client:</strong> {{{{clientName}}}}</p>
  </div>
  {_BUTTON % "Open Case"}""",
        ["lawyerName", "caseType", "caseNumber", "caseTitle", "clientName"],
    ),
    _template(
        "welcome_client", "Welcome Client", "Sent to a newly registered client.",
        "Welcome to {{firmName}}",
        f"""  <h2 style="color: #1a365d;">Welcome!</h2>
  <p>Hello {{{{clientName}}}},</p>
  <p>Thank you for registering with us. Your account has been successfully created.</p>
  <p>Through your client portal, you can submit new cases, track their progress, share documents and message your lawyer.</p>
  {_BUTTON % "Go to Portal"}""",
        ["clientName"],
    ),
    _template(
        "inactivity_reminder", "Inactivity Reminder", "Sent to the client when a case has been idle too long.",
        "Action Needed: Your Case {{caseNumber}} Requires Attention",
        f"""  <h2 style="color: #1a365d;">Case Update Needed</h2>
  <p>Hello {{{{clientName}}}},</p>
  <p>We noticed that your case has had no activity for <strong>{{{{daysSinceActivity}}}} days</strong>.</p>
  <div style="background: #fffaf0; padding: 16px; border-radius: 8px; margin: 16px 0; border-left: 4px solid #dd6b20;">
    <p style="margin: 0;"><strong>Case Number:</strong> {{{{caseNumber}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Title:</strong> {{{{caseTitle}}}}</p>
    {{{{#if lawyerName}}}}<p style="margin: 8px 0 0;"><strong>Your Attorney:</strong> {{{{lawyerName}}}}</p>{{{{/if}}}}
  </div>
  <p>To keep your case moving forward, log in to review its status, upload pending documents or message your attorney.</p>
  {_BUTTON % "Review Your Case"}""",
        ["clientName", "caseNumber", "caseTitle", "daysSinceActivity", "lawyerName"],
    ),
    _template(
        "weekly_summary", "Weekly Summary", "Weekly digest of a lawyer's case load.",
        "Weekly Case Summary - {{summaryDate}}",
        f"""  <h2 style="color: #1a365d;">Weekly Case Summary</h2>
  <p>Hello {{{{lawyerName}}}},</p>
  <p>Here is your case summary for the week ending {{{{summaryDate}}}}.</p>
  {_BOX_OPEN}
    <p style="margin: 0;"><strong>Total Cases:</strong> {{{{totalCases}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Active Cases:</strong> {{{{activeCases}}}}</p>
    <p style="margin: 8px 0 0;"><strong>New This Week:</strong> {{{{newCasesThisWeek}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Closed This Week:</strong> {{{{closedCasesThisWeek}}}}</p>
    <p style="margin: 8px 0 0;"><strong>Needing Attention:</strong> {{{{casesNeedingAttention}}}}</p>
  </div>
  {{{{#if attentionCasesHtml}}}}<h3 style="color: #c05621;">Cases Needing Attention</h3>
  <ul>{{{{attentionCasesHtml}}}}</ul>{{{{/if}}}}
  {{{{#if activeCasesHtml}}}}<h3 style="color: #1a365d;">Active Cases</h3>
  <ul>{{{{activeCasesHtml}}}}</ul>{{{{/if}}}}
  {_BUTTON % "Open Dashboard"}""",
        ["lawyerName", "summaryDate", "totalCases", "activeCases", "newCasesThisWeek",
         "closedCasesThisWeek", "casesNeedingAttention", "attentionCasesHtml", "activeCasesHtml"],
    ),
]}


_COMMON_SAMPLE_DATA = {
    "firmName": "Law Firm Case Management",
    "portalUrl": "https://portal.example.com",
}

SAMPLE_DATA: Dict[str, Dict[str, str]] = {
    "case_submitted": {
        "clientName": "John Smith",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
    },
    "case_status_changed": {
        "clientName": "John Smith",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
        "oldStatus": "New",
        "newStatus": "In Review",
    },
    "new_message": {
        "recipientName": "John Smith",
        "senderName": "Jane Attorney",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
        "messagePreview": "I have reviewed your case documents and have some questions",
    },
    "document_uploaded": {
        "recipientName": "John Smith",
        "uploaderName": "Jane Attorney",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
        "documentName": "Medical_Records.pdf",
    },
    "lawyer_assigned": {
        "clientName": "John Smith",
        "lawyerName": "Jane Attorney",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
    },
    "case_assigned_to_lawyer": {
        "lawyerName": "Jane Attorney",
        "clientName": "John Smith",
        "caseType": "Personal Injury",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
    },
    "welcome_client": {
        "clientName": "John Smith",
    },
    "inactivity_reminder": {
        "clientName": "John Smith",
        "caseNumber": "2025-PI-0001",
        "caseTitle": "Personal Injury - John Smith",
        "daysSinceActivity": "21",
        "lawyerName": "Jane Attorney",
    },
    "weekly_summary": {
        "lawyerName": "Jane Attorney",
        "summaryDate": "January 6, 2025",
        "totalCases": "12",
        "activeCases": "9",
        "newCasesThisWeek": "2",
        "closedCasesThisWeek": "1",
        "casesNeedingAttention": "1",
        "attentionCasesHtml": "<li>2025-PI-0001 - Personal Injury - John Smith (9 days idle)</li>",
        "activeCasesHtml": "<li>2025-PI-0001 - Personal Injury - John Smith (In Progress)</li>",
    },
}


def get_sample_data(template_key: str) -> Dict[str, str]:
    return {**_COMMON_SAMPLE_DATA, **SAMPLE_DATA.get(template_key, {})}
