"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL
from .utils.sanitization import sanitize_string

# Liturgical navy/gold color scheme
THEME = {
    "primary": "#1e3a5f",
    "primary_dark": "#152a45",
    "primary_light": "#e8eef6",
    "accent": "#c9a227",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#15803d",
    "warning": "#d97706",
    "danger": "#dc2626",
}

LOGO_URL = f"{FRONTEND_URL}/logo.png"

PRIORITY_COLORS = {"urgent": THEME["danger"], "warning": THEME["warning"], "info": THEME["primary"]}


def _money(amount: Optional[float]) -> str:
    return f"${(amount or 0):,.2f}"


def _e(value) -> str:
    """Escape user-supplied values before they go into markup"""
    return sanitize_string(str(value)) if value is not None else ""


def info_rows(rows: list) -> str:
    """Render (label, value) pairs as an MJML table"""
    cells = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']}; width: 45%;">{_e(label)}</td>
          <td style="padding: 6px 0; color: {THEME['text_primary']}; font-weight: 600;">{_e(value)}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table font-size="15px" padding="8px 0 16px 0">
      {cells}
    </mj-table>
    """


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    organization_name: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    sent_on_behalf = ""
    if organization_name:
        sent_on_behalf = f"""
        <mj-text align="center" font-size="12px" color="#94a3b8" padding="12px 0 0 0">
          Sent on behalf of {_e(organization_name)}.
        </mj-text>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{_e(title)}</mj-title>
        <mj-preview>{_e(preview_text)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Georgia, 'Times New Roman', serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="28px 20px">
          <mj-column>
            <mj-image src="{LOGO_URL}" alt="ChiRho Events" width="120px" padding="0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {_e(title)}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              ChiRho Events - registration for Catholic ministry events.
            </mj-text>
            {sent_on_behalf}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


# ============================================================================
# REGISTRATION
# ============================================================================


def group_registration_confirmation_template(
    leader_name: str,
    group_name: str,
    event_name: str,
    access_code: str,
    total_amount: float,
    deposit_amount: float,
    balance_remaining: float,
    payment_method: str,
    check_payable_to: Optional[str] = None,
    check_mailing_address: Optional[str] = None,
    organization_name: Optional[str] = None,
) -> str:
    """Group leader confirmation with access code and payment summary"""
    check_section = ""
    if payment_method == "check":
        check_section = f"""
        <mj-text font-weight="600" color="{THEME['text_primary']}">Paying by check</mj-text>
        <mj-text>
          Please mail a check for {_money(deposit_amount)} payable to
          <strong>{_e(check_payable_to or organization_name or 'the event organizer')}</strong>.
          Write your access code <strong>{_e(access_code)}</strong> on the memo line.
        </mj-text>
        """
        if check_mailing_address:
            check_section += f"""
        <mj-text color="{THEME['text_muted']}">{_e(check_mailing_address)}</mj-text>
        """

    content = f"""
    <mj-text>Dear {_e(leader_name)},</mj-text>
    <mj-text>
      Thank you for registering <strong>{_e(group_name)}</strong> for {_e(event_name)}.
      Share the access code below with your group so each participant can complete their forms.
    </mj-text>

    <mj-text align="center" font-size="28px" font-weight="700" letter-spacing="4px"
      color="{THEME['primary']}" font-family="'Courier New', monospace" padding="16px 0">
      {_e(access_code)}
    </mj-text>

    {info_rows([
        ("Total", _money(total_amount)),
        ("Deposit due", _money(deposit_amount)),
        ("Balance remaining", _money(balance_remaining)),
        ("Payment method", "Check" if payment_method == "check" else "Credit Card"),
    ])}

    {check_section}
    """

    return get_base_template(
        title="Registration Received",
        preview_text=f"Your access code for {event_name} is {access_code}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/group-leader",
        cta_label="Open Group Leader Portal",
        organization_name=organization_name,
    )


def individual_registration_confirmation_template(
    first_name: str,
    event_name: str,
    housing_type: str,
    total_amount: float,
    payment_method: str,
    qr_code_url: Optional[str] = None,
    check_payable_to: Optional[str] = None,
    organization_name: Optional[str] = None,
) -> str:
    """Individual confirmation with check-in QR code"""
    qr_section = ""
    if qr_code_url:
        qr_section = f"""
        <mj-text align="center" color="{THEME['text_muted']}">Show this code at check-in</mj-text>
        <mj-image src="{qr_code_url}" alt="Check-in QR code" width="200px" />
        """

    payment_note = ""
    if payment_method == "check":
        payment_note = f"""
        <mj-text>
          Please mail your check for {_money(total_amount)} payable to
          <strong>{_e(check_payable_to or organization_name or 'the event organizer')}</strong>.
          Your registration is confirmed once the check is received.
        </mj-text>
        """

    content = f"""
    <mj-text>Hi {_e(first_name)},</mj-text>
    <mj-text>You're registered for <strong>{_e(event_name)}</strong>.</mj-text>

    {info_rows([
        ("Housing", housing_type.replace('_', ' ').title()),
        ("Amount", _money(total_amount)),
    ])}

    {payment_note}
    {qr_section}
    """

    return get_base_template(
        title="You're Registered!",
        preview_text=f"Registration confirmation for {event_name}",
        content_sections=content,
        organization_name=organization_name,
    )


def payment_received_template(
    recipient_name: str,
    event_name: str,
    amount: float,
    payment_method_label: str,
    amount_paid: float,
    amount_remaining: float,
    organization_name: Optional[str] = None,
) -> str:
    """Receipt for a card or manually recorded payment"""
    paid_in_full = amount_remaining <= 0
    status_line = (
        f'<mj-text color="{THEME["success"]}" font-weight="600">Your balance is paid in full. Thank you!</mj-text>'
        if paid_in_full
        else f"<mj-text>Remaining balance: <strong>{_money(amount_remaining)}</strong></mj-text>"
    )

    content = f"""
    <mj-text>Hi {_e(recipient_name)},</mj-text>
    <mj-text>We received your payment for {_e(event_name)}.</mj-text>

    {info_rows([
        ("Amount received", _money(amount)),
        ("Method", payment_method_label),
        ("Total paid to date", _money(amount_paid)),
    ])}

    {status_line}
    """

    return get_base_template(
        title="Payment Received",
        preview_text=f"We received {_money(amount)} for {event_name}",
        content_sections=content,
        organization_name=organization_name,
    )


# ============================================================================
# LIABILITY FORMS
# ============================================================================


def parent_consent_request_template(
    participant_name: str,
    event_name: str,
    consent_url: str,
    expires_days: int,
    organization_name: Optional[str] = None,
) -> str:
    """Ask a parent or guardian to complete a youth liability form"""
    content = f"""
    <mj-text>Hello,</mj-text>
    <mj-text>
      <strong>{_e(participant_name)}</strong> has started a liability and medical release form for
      <strong>{_e(event_name)}</strong>. A parent or legal guardian must review, complete and sign it.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This link expires in {expires_days} days.
    </mj-text>
    """

    return get_base_template(
        title="Parent Signature Needed",
        preview_text=f"Please complete {participant_name}'s form for {event_name}",
        content_sections=content,
        cta_url=consent_url,
        cta_label="Complete the Form",
        organization_name=organization_name,
    )


def liability_form_completed_template(
    recipient_name: str,
    participant_name: str,
    event_name: str,
    for_group_leader: bool = False,
    organization_name: Optional[str] = None,
) -> str:
    """Confirmation to the signer, or a heads-up to the group leader"""
    if for_group_leader:
        message = f"The liability form for <strong>{_e(participant_name)}</strong> has been completed."
    else:
        message = f"Thank you for completing the liability form for <strong>{_e(participant_name)}</strong>."

    content = f"""
    <mj-text>Hi {_e(recipient_name)},</mj-text>
    <mj-text>{message}</mj-text>
    <mj-text color="{THEME['text_muted']}">Event: {_e(event_name)}</mj-text>
    """

    return get_base_template(
        title="Liability Form Completed",
        preview_text=f"{participant_name}'s form for {event_name} is complete",
        content_sections=content,
        organization_name=organization_name,
    )


# ============================================================================
# WAITLIST / TEAM
# ============================================================================


def waitlist_invitation_template(
    name: str,
    event_name: str,
    registration_url: str,
    expires_hours: int,
    organization_name: Optional[str] = None,
) -> str:
    content = f"""
    <mj-text>Hi {_e(name)},</mj-text>
    <mj-text>
      Good news! A spot has opened up for <strong>{_e(event_name)}</strong> and you're next on the waitlist.
    </mj-text>
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This invitation is held for you for {expires_hours} hours.
    </mj-text>
    """

    return get_base_template(
        title="A Spot Opened Up",
        preview_text=f"Register now for {event_name}",
        content_sections=content,
        cta_url=registration_url,
        cta_label="Register Now",
        organization_name=organization_name,
    )


def team_invitation_template(inviter_name: str, organization_name: str, role: str) -> str:
    content = f"""
    <mj-text>Hello,</mj-text>
    <mj-text>
      {_e(inviter_name)} invited you to join <strong>{_e(organization_name)}</strong> on ChiRho Events
      as <strong>{_e(role.replace('_', ' ').title())}</strong>.
    </mj-text>
    <mj-text>Sign in with this email address to get started.</mj-text>
    """

    return get_base_template(
        title="You're Invited",
        preview_text=f"Join {organization_name} on ChiRho Events",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/sign-in",
        cta_label="Accept Invitation",
    )


# ============================================================================
# WEEKLY DIGEST
# ============================================================================


def _stat_cell(label: str, value: str) -> str:
    return f"""
    <mj-column width="33%">
      <mj-text align="center" font-size="26px" font-weight="700" color="{THEME['primary']}" padding="4px 0">{_e(value)}</mj-text>
      <mj-text align="center" font-size="12px" color="{THEME['text_muted']}" padding="0 0 12px 0">{_e(label)}</mj-text>
    </mj-column>
    """


def weekly_digest_template(organization_name: str, date_range: str, stats: dict, action_items: list,
                           upcoming_events: list, recent_activity: list) -> str:
    """Weekly summary for organization admins"""
    action_html = "".join(
        f"""
        <mj-text padding="4px 0" color="{PRIORITY_COLORS.get(item['priority'], THEME['text_secondary'])}">
          • {_e(item['message'])}
        </mj-text>"""
        for item in action_items
    ) or f'<mj-text color="{THEME["success"]}">Nothing needs your attention this week.</mj-text>'

    events_html = "".join(
        f"<mj-text padding=\"4px 0\">• <strong>{_e(e['name'])}</strong> - {_e(e['startDate'])} "
        f"({e['registrations']} registrations)</mj-text>"
        for e in upcoming_events
    ) or f'<mj-text color="{THEME["text_muted"]}">No upcoming events.</mj-text>'

    activity_html = "".join(
        f"<mj-text padding=\"4px 0\" font-size=\"14px\">• {_e(a['description'])}</mj-text>"
        for a in recent_activity
    ) or f'<mj-text color="{THEME["text_muted"]}">No recent activity.</mj-text>'

    return f"""
    <mjml>
      <mj-head>
        <mj-title>Weekly Digest</mj-title>
        <mj-preview>{_e(organization_name)} - {_e(date_range)}</mj-preview>
        <mj-attributes>
          <mj-all font-family="Georgia, 'Times New Roman', serif" />
          <mj-text font-size="15px" line-height="1.5" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" color="#ffffff" font-weight="600">Weekly Digest</mj-text>
            <mj-text align="center" font-size="14px" color="{THEME['primary_light']}">
              {_e(organization_name)} · {_e(date_range)}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="24px 20px 0 20px">
          {_stat_cell("New registrations", str(stats['newRegistrations']))}
          {_stat_cell("New participants", str(stats['newParticipants']))}
          {_stat_cell("Revenue this week", _money(stats['revenueThisWeek']))}
        </mj-section>
        <mj-section background-color="#ffffff" padding="0 20px 24px 20px">
          {_stat_cell("Forms completed", str(stats['formsCompletedThisWeek']))}
          {_stat_cell("Pending checks", str(stats['pendingChecks']))}
          {_stat_cell("Open tickets", str(stats['openTickets']))}
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 24px 40px">
          <mj-column>
            <mj-text font-size="18px" font-weight="600" color="{THEME['text_primary']}">Action items</mj-text>
            {action_html}
            <mj-text font-size="18px" font-weight="600" color="{THEME['text_primary']}" padding-top="20px">Upcoming events</mj-text>
            {events_html}
            <mj-text font-size="18px" font-weight="600" color="{THEME['text_primary']}" padding-top="20px">Recent activity</mj-text>
            {activity_html}
          </mj-column>
        </mj-section>

        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{FRONTEND_URL}/dashboard/admin" background-color="{THEME['primary']}" border-radius="8px">
              Open Dashboard
            </mj-button>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """
