"""Sample users and conversations for running the client without a backend."""

from campus_chat.messaging.types import (
    Attachment,
    ChatUser,
    Conversation,
    Message,
    Participant,
)

from .mirror import MirrorChatStore

TEACHER = Participant(user_id=3, name="Fernanda Lima", role="teacher")
STUDENT_JOAO = Participant(user_id=4, name="João Silva", role="student")
STUDENT_ANA = Participant(user_id=5, name="Ana Costa", role="student")

SEED_USERS = [
    ChatUser(user_id=1, name="Administrador", role="admin"),
    ChatUser(user_id=3, name="Fernanda Lima", role="teacher"),
    ChatUser(user_id=4, name="João Silva", role="student"),
    ChatUser(user_id=5, name="Ana Costa", role="student"),
]


def _message(message_id, conversation_id, sender, receiver, text, timestamp, read,
             attachments=None, has_links=False):
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender.user_id,
        receiver_id=receiver.user_id,
        sender_name=sender.name,
        receiver_name=receiver.name,
        sender_role=sender.role,
        receiver_role=receiver.role,
        message=text,
        timestamp=timestamp,
        read=read,
        attachments=attachments or [],
        has_links=has_links,
    )


def seed_conversations():
    return [
        Conversation(
            id=1,
            participants=[TEACHER, STUDENT_JOAO],
            last_message="Dei uma olhada no seu exercício. Está quase perfeito!",
            last_message_timestamp="2025-08-03T15:00:00-03:00",
            unread_count=0,
        ),
        Conversation(
            id=2,
            participants=[TEACHER, STUDENT_ANA],
            last_message="Ana, lembre-se que temos prova na próxima semana.",
            last_message_timestamp="2025-08-03T15:10:00-03:00",
            unread_count=1,
        ),
    ]


def seed_messages():
    return [
        _message(1, 1, TEACHER, STUDENT_JOAO,
                 "Olá João, como você está se saindo no curso?",
                 "2025-08-03T14:30:00-03:00", True),
        _message(2, 1, STUDENT_JOAO, TEACHER,
                 "Olá professora, estou gostando bastante do curso. "
                 "Tenho uma dúvida sobre o último exercício.",
                 "2025-08-03T14:35:00-03:00", True),
        _message(7, 1, TEACHER, STUDENT_JOAO,
                 "Olá João! Fico feliz que esteja gostando. Sobre o exercício, você pode "
                 "verificar a documentação em https://www.exemplo.com/documentacao. "
                 "Lá tem vários exemplos que podem te ajudar.",
                 "2025-08-03T14:40:00-03:00", False, has_links=True),
        _message(8, 1, STUDENT_JOAO, TEACHER,
                 "Estou tentando resolver este problema usando a biblioteca que vimos na aula.",
                 "2025-08-03T14:45:00-03:00", False,
                 attachments=[
                     Attachment(
                         id="file123",
                         file_name="exercicio_resolvido.pdf",
                         file_type="application/pdf",
                         file_size=245000,
                         file_url="/uploads/exercicio_resolvido.pdf",
                     ),
                 ]),
        _message(9, 1, TEACHER, STUDENT_JOAO,
                 "Dei uma olhada no seu exercício. Está quase perfeito! Apenas falta ajustar "
                 "a função de cálculo. Veja este exemplo e mais recursos em "
                 "https://www.exemplo.com/recursos-adicionais",
                 "2025-08-03T15:00:00-03:00", False, has_links=True,
                 attachments=[
                     Attachment(
                         id="file456",
                         file_name="exemplo_corrigido.jpg",
                         file_type="image/jpeg",
                         file_size=125000,
                         file_url="/uploads/exemplo_corrigido.jpg",
                         thumbnail_url="/uploads/thumbnails/exemplo_corrigido.jpg",
                     ),
                     Attachment(
                         id="file789",
                         file_name="solucao.docx",
                         file_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                         file_size=35000,
                         file_url="/uploads/solucao.docx",
                     ),
                 ]),
        _message(3, 2, TEACHER, STUDENT_ANA,
                 "Ana, lembre-se que temos prova na próxima semana.",
                 "2025-08-03T15:10:00-03:00", False),
    ]


def seed_mirror_store() -> MirrorChatStore:
    """Create a mirror pre-populated with the sample data."""
    return MirrorChatStore(
        users=list(SEED_USERS),
        conversations=seed_conversations(),
        messages=seed_messages(),
    )
