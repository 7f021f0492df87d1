"""Data models for institution login and multi-factor challenge sessions.

A login attempt either completes with a list of accounts or is paused by the
institution with one or more MFA questions. The paused attempt is captured as
a ChallengeSession that the caller answers and resubmits.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class ContextType(Enum):
    """Which login flow a challenge session resumes.

    Attributes:
        DISCOVER_AND_ADD: Initial discovery of accounts at an institution
            (resubmitted with POST institutions/{institution_id}/logins)
        UPDATE_LOGIN: Credential update or refresh of an existing login
            (resubmitted with PUT logins/{login_id})
    """

    DISCOVER_AND_ADD = "discover_and_add"
    UPDATE_LOGIN = "update_login"


class LoginState(Enum):
    """States of an institution login attempt."""

    INITIATED = "initiated"
    CHALLENGED = "challenged"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Choice:
    """One selectable answer offered for a challenge question.

    Attributes:
        value: Machine value to submit back (``val`` on the wire)
        text: Display text shown to the user
    """

    value: str
    text: str


@dataclass(frozen=True)
class Challenge:
    """A single MFA question with its ordered answer choices.

    Questions without choices expect a free-text answer.
    """

    question: str
    choices: List[Choice] = field(default_factory=list)


@dataclass
class ChallengeSession:
    """A paused login awaiting answers to MFA questions.

    Answers are positional: ``answers[i]`` answers ``challenges[i]``.

    Attributes:
        context_type: Which flow to resume
        session_id: Value of the ``Challengesessionid`` response header
        node_id: Value of the ``Challengenodeid`` response header
        challenges: Questions in the order the institution sent them
        institution_id: Set for DISCOVER_AND_ADD sessions
        login_id: Set for UPDATE_LOGIN sessions
        answers: Caller-supplied answers, filled in before resubmission
    """

    context_type: ContextType
    session_id: str
    node_id: str
    challenges: List[Challenge]
    institution_id: Optional[str] = None
    login_id: Optional[str] = None
    answers: List[Any] = field(default_factory=list)

    def answer(self, *answers: Any) -> "ChallengeSession":
        """Set the positional answers and return self for chaining."""
        self.answers = list(answers)
        return self


@dataclass(frozen=True)
class Credential:
    """Named credential field for an institution login (e.g. username key/value)."""

    name: str
    value: str

    def __repr__(self) -> str:
        return f"Credential(name={self.name!r}, value='***')"


@dataclass
class LoginResult:
    """Outcome of a login or challenge response call.

    Attributes:
        state: DONE with accounts, or CHALLENGED with a session to answer
        accounts: Accounts returned by the institution when DONE
        challenge_session: Session to answer when CHALLENGED
    """

    state: LoginState
    accounts: List[Any] = field(default_factory=list)
    challenge_session: Optional[ChallengeSession] = None

    @property
    def is_challenged(self) -> bool:
        return self.state is LoginState.CHALLENGED
