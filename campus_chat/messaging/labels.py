"""Localised display strings for pt-BR and en."""

from typing import Any, Dict

LABELS: Dict[str, Dict[str, Any]] = {
    "pt-BR": {
        "yesterday": "Ontem",
        "role_teacher": "Professor(a)",
        "role_student": "Aluno(a)",
        "sent_attachment": "Enviou um anexo",
        "attachment_count": "(+{count} anexos)",
        "typing_one": "{name} está digitando…",
        "typing_many": "{count} pessoas estão digitando…",
        "select_conversation": "Selecione uma conversa para iniciar o chat",
        "no_messages": "Nenhuma mensagem encontrada. Envie a primeira mensagem!",
        "no_conversations": "Nenhuma conversa encontrada",
        "no_users": "Nenhum usuário disponível para chat",
        "no_matching_users": "Nenhum usuário encontrado com esse nome",
        "day_label": "{day:02d} de {month}, {year}",
        "weekdays": ["seg", "ter", "qua", "qui", "sex", "sáb", "dom"],
        "months": [
            "janeiro", "fevereiro", "março", "abril", "maio", "junho",
            "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
        ],
    },
    "en": {
        "yesterday": "Yesterday",
        "role_teacher": "Teacher",
        "role_student": "Student",
        "sent_attachment": "Sent an attachment",
        "attachment_count": "(+{count} attachments)",
        "typing_one": "{name} is typing…",
        "typing_many": "{count} people are typing…",
        "select_conversation": "Select a conversation to start chatting",
        "no_messages": "No messages yet. Send the first one!",
        "no_conversations": "No conversations found",
        "no_users": "No users available to chat with",
        "no_matching_users": "No user found with that name",
        "day_label": "{month} {day:02d}, {year}",
        "weekdays": ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
        "months": [
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ],
    },
}


def get_label(locale: str, key: str, **kwargs) -> Any:
    """
    Look up a display string, formatting it with ``kwargs`` when given.

    Unknown locales fall back to pt-BR.
    """
    value = LABELS.get(locale, LABELS["pt-BR"])[key]
    if kwargs:
        return value.format(**kwargs)
    return value
