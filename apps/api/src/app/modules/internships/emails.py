"""
Internship email templates (pt-BR).

Every value taken from the database or from a request is HTML-escaped.
"""

from dataclasses import dataclass, field
from html import escape

CONVOCATION_SUBJECT = "Convocação de estágio: {name}"
REMINDER_SUBJECT = "Estágio próximo do encerramento: {name}"

_STYLE = """
        body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
        .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
        .header { color: #1a365d; margin-bottom: 24px; }
        .button { display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
        .location { border: 1px solid #e5e7eb; border-radius: 8px; padding: 12px 16px; margin: 12px 0; }
        .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


@dataclass
class LocationSummary:
    """A location already formatted for display."""

    company_name: str
    title: str | None = None
    address: str | None = None
    schedule: str | None = None
    weekdays: list[str] = field(default_factory=list)
    reference_point: str | None = None
    notes: str | None = None


@dataclass
class RenderedEmail:
    subject: str
    html: str
    text: str


def _wrap(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>{_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>Esta é uma mensagem automática. Não responda a este email.</p>
            </div>
        </div>
    </body>
    </html>
    """


def _location_html(location: LocationSummary) -> str:
    heading = escape(location.company_name)
    if location.title:
        heading = f"{escape(location.title)} - {heading}"

    lines = [f"<strong>{heading}</strong>"]
    if location.address:
        lines.append(f"Endereço: {escape(location.address)}")
    if location.schedule:
        lines.append(f"Horário: {escape(location.schedule)}")
    if location.weekdays:
        lines.append(f"Dias: {escape(', '.join(location.weekdays))}")
    if location.reference_point:
        lines.append(f"Ponto de referência: {escape(location.reference_point)}")
    if location.notes:
        lines.append(f"Observações: {escape(location.notes)}")

    return '<div class="location">' + "<br>".join(lines) + "</div>"


def _location_text(location: LocationSummary) -> str:
    heading = location.company_name
    if location.title:
        heading = f"{location.title} - {heading}"

    lines = [f"- {heading}"]
    if location.address:
        lines.append(f"  Endereço: {location.address}")
    if location.schedule:
        lines.append(f"  Horário: {location.schedule}")
    if location.weekdays:
        lines.append(f"  Dias: {', '.join(location.weekdays)}")
    if location.reference_point:
        lines.append(f"  Ponto de referência: {location.reference_point}")
    if location.notes:
        lines.append(f"  Observações: {location.notes}")
    return "\n".join(lines)


def render_convocation(
    *,
    student_name: str,
    course_name: str,
    cohort_name: str,
    internship_name: str,
    start_date: str,
    end_date: str,
    confirmation_url: str,
    mandatory: bool,
    primary_company: str | None,
    total_hours: int | None,
    notes: str | None,
    locations: list[LocationSummary],
) -> RenderedEmail:
    """Render the email inviting the student to confirm an internship."""
    mandatory_label = "Sim" if mandatory else "Não"

    details = [
        f"<li><strong>Curso:</strong> {escape(course_name)}</li>",
        f"<li><strong>Turma:</strong> {escape(cohort_name)}</li>",
        f"<li><strong>Período:</strong> {escape(start_date)} a {escape(end_date)}</li>",
        f"<li><strong>Obrigatório:</strong> {mandatory_label}</li>",
    ]
    if primary_company:
        details.append(f"<li><strong>Empresa principal:</strong> {escape(primary_company)}</li>")
    if total_hours:
        details.append(f"<li><strong>Carga horária:</strong> {total_hours}h</li>")

    notes_html = f"<p><strong>Observações:</strong> {escape(notes)}</p>" if notes else ""
    locations_html = "".join(_location_html(location) for location in locations)
    safe_url = escape(confirmation_url, quote=True)

    body = f"""
            <p>Olá {escape(student_name)},</p>
            <p>Você foi convocado(a) para o estágio <strong>{escape(internship_name)}</strong>.</p>
            <ul>{"".join(details)}</ul>
            {notes_html}
            <h2>Locais</h2>
            {locations_html}
            <p>Confirme o recebimento desta convocação clicando no botão abaixo:</p>
            <a href="{safe_url}" class="button">Confirmar estágio</a>
            <p>Ou copie e cole este link no seu navegador:</p>
            <p style="word-break: break-all; color: #3b82f6;">{safe_url}</p>
    """

    text_lines = [
        f"Olá {student_name},",
        "",
        f"Você foi convocado(a) para o estágio {internship_name}.",
        f"Curso: {course_name}",
        f"Turma: {cohort_name}",
        f"Período: {start_date} a {end_date}",
        f"Obrigatório: {mandatory_label}",
    ]
    if primary_company:
        text_lines.append(f"Empresa principal: {primary_company}")
    if total_hours:
        text_lines.append(f"Carga horária: {total_hours}h")
    if notes:
        text_lines.append(f"Observações: {notes}")
    text_lines += ["", "Locais:"]
    text_lines += [_location_text(location) for location in locations]
    text_lines += ["", f"Confirme o recebimento em: {confirmation_url}"]

    return RenderedEmail(
        subject=CONVOCATION_SUBJECT.format(name=internship_name),
        html=_wrap("Convocação de estágio", body),
        text="\n".join(text_lines),
    )


def render_reminder(
    *,
    recipient_name: str,
    student_name: str,
    course_name: str,
    cohort_name: str,
    internship_name: str,
    start_date: str,
    end_date: str,
    days_remaining: int,
) -> RenderedEmail:
    """Render the reminder sent to the responsible party before the end date."""
    days_label = "1 dia" if days_remaining == 1 else f"{days_remaining} dias"

    body = f"""
            <p>Olá {escape(recipient_name)},</p>
            <p>O estágio <strong>{escape(internship_name)}</strong> do(a) aluno(a)
            <strong>{escape(student_name)}</strong> termina em <strong>{days_label}</strong>.</p>
            <ul>
                <li><strong>Curso:</strong> {escape(course_name)}</li>
                <li><strong>Turma:</strong> {escape(cohort_name)}</li>
                <li><strong>Período:</strong> {escape(start_date)} a {escape(end_date)}</li>
            </ul>
            <p>Verifique as pendências e registre a conclusão do estágio.</p>
    """

    text = "\n".join(
        [
            f"Olá {recipient_name},",
            "",
            f"O estágio {internship_name} do(a) aluno(a) {student_name} termina em {days_label}.",
            f"Curso: {course_name}",
            f"Turma: {cohort_name}",
            f"Período: {start_date} a {end_date}",
            "",
            "Verifique as pendências e registre a conclusão do estágio.",
        ]
    )

    return RenderedEmail(
        subject=REMINDER_SUBJECT.format(name=internship_name),
        html=_wrap("Estágio próximo do encerramento", body),
        text=text,
    )
