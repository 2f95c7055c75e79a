"""
Resource policy codec.

Converts the policies attached to a repository object into a PolicyDocument
for archiving, and installs the policies described by a PolicyDocument onto
an object on restore.

Each policy is classified by its principal:

    ┌────────────────────────────┬────────────────┬──────────────────────┐
    │ principal                  │ rp-context     │ body                 │
    ├────────────────────────────┼────────────────┼──────────────────────┤
    │ group "Anonymous"          │ Anonymous      │ group name           │
    │ group "Administrator"      │ Administrator  │ group name           │
    │ any other group            │ MANAGED GROUP  │ exported group name  │
    │ account                    │ ACADEMIC USER  │ email                │
    └────────────────────────────┴────────────────┴──────────────────────┘

Restore converts every entry before touching the object, then swaps the
whole policy set inside one transaction.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional, Tuple

from bagforge.archive.documents import (
    RP_ACTION,
    RP_CONTEXT,
    RP_DESCRIPTION,
    RP_END_DATE,
    RP_IN_EFFECT,
    RP_NAME,
    RP_START_DATE,
    PolicyDocument,
    PolicyEntry,
)
from bagforge.content.models import Group, RepositoryObject, ResourcePolicy
from bagforge.content.names import GroupNameTranslator
from bagforge.core.context import Context
from bagforge.core.exceptions import (
    ArchiveError,
    SchemaDriftError,
    TranslationError,
    UnmappedActionError,
    UnresolvablePrincipalError,
)
from bagforge.core.logging import get_logger
from bagforge.policy.actions import code_for, name_for
from bagforge.policy.outcomes import ConversionIssue, RestoreReport

logger = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"

CONTEXT_ANONYMOUS = "Anonymous"
CONTEXT_ADMIN = "Administrator"
CONTEXT_GROUP = "MANAGED GROUP"
CONTEXT_ACCOUNT = "ACADEMIC USER"


def is_in_effect(
    start_date: Optional[date], end_date: Optional[date], now: datetime
) -> bool:
    """
    Whether a policy window contains ``now``.

    Dates are taken at midnight. A start strictly after now, or an end
    strictly before now, puts the policy out of effect.
    """
    if start_date is not None and datetime.combine(start_date, time.min) > now:
        return False
    if end_date is not None and datetime.combine(end_date, time.min) < now:
        return False
    return True


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime(DATE_FORMAT) if value is not None else None


def parse_date(value: str) -> date:
    """Parse a wire date. Raises ValueError on bad input."""
    return datetime.strptime(value, DATE_FORMAT).date()


class PolicyCodec:
    """
    Translate resource policies to and from policy documents.

    Args:
        translator: Group name translator for managed groups
        strict_actions: Treat an unknown rp-action on restore as fatal.
            When False the entry is restored without an action and a
            warning is reported.
    """

    def __init__(
        self,
        translator: Optional[GroupNameTranslator] = None,
        strict_actions: bool = True,
    ) -> None:
        self.translator = translator or GroupNameTranslator()
        self.strict_actions = strict_actions

    # === Pack ===

    def to_document(
        self,
        context: Context,
        dso: RepositoryObject,
        now: Optional[datetime] = None,
    ) -> PolicyDocument:
        """
        Describe the object's policies as a policy document.

        Args:
            context: Operation context
            dso: Object whose policies are read
            now: Reference time for rp-in-effect (defaults to the current time)

        Raises:
            ArchiveError: If a group name cannot be exported or an action code
                has no symbolic name. The cause is the underlying
                TranslationError or SchemaDriftError.
        """
        now = now or datetime.now()
        document = PolicyDocument()
        for policy in context.authorize.get_policies(context, dso):
            try:
                document.add_entry(self._to_entry(context, policy, now))
            except (TranslationError, SchemaDriftError) as e:
                raise ArchiveError(
                    f"Cannot write policies of {dso.handle}: {e}"
                ) from e
        logger.debug("Encoded policies", handle=dso.handle, count=len(document))
        return document

    def _to_entry(
        self, context: Context, policy: ResourcePolicy, now: datetime
    ) -> PolicyEntry:
        entry = PolicyEntry()
        entry.set(RP_NAME, policy.rp_name)
        entry.set(RP_DESCRIPTION, policy.rp_description)

        in_effect = is_in_effect(policy.start_date, policy.end_date, now)
        entry.set(RP_IN_EFFECT, "true" if in_effect else "false")
        entry.set(RP_START_DATE, format_date(policy.start_date))
        entry.set(RP_END_DATE, format_date(policy.end_date))

        group = policy.group
        if group is not None:
            if group.name == Group.ANONYMOUS:
                entry.set(RP_CONTEXT, CONTEXT_ANONYMOUS)
                entry.body = group.name
            elif group.name == Group.ADMIN:
                entry.set(RP_CONTEXT, CONTEXT_ADMIN)
                entry.body = group.name
            else:
                entry.set(RP_CONTEXT, CONTEXT_GROUP)
                entry.body = self.translator.export_name(context, group.name)
        elif policy.account is not None:
            entry.set(RP_CONTEXT, CONTEXT_ACCOUNT)
            entry.body = policy.account.email
        else:
            logger.warning("Policy has no group or account", policy_id=policy.id)

        action = name_for(policy.action)
        if action is None:
            raise SchemaDriftError(policy.action)
        entry.set(RP_ACTION, action)
        return entry

    # === Restore ===

    def register_policies(
        self, context: Context, dso: RepositoryObject, document: PolicyDocument
    ) -> RestoreReport:
        """
        Replace the object's policies with those described by the document.

        Every entry is converted first; the object is only modified once
        all conversions succeed, and then inside one transaction.

        Returns:
            RestoreReport listing recoverable issues

        Raises:
            UnresolvablePrincipalError: A named group or account is missing
            TranslationError: A managed group name cannot be imported
            UnmappedActionError: Unknown rp-action with strict_actions set
        """
        report = RestoreReport()
        candidates: List[ResourcePolicy] = []

        for index, entry in enumerate(document):
            policy, issues = self._from_entry(context, entry)
            for issue in issues:
                if issue.is_fatal:
                    logger.error(
                        "Policy entry cannot be restored",
                        handle=dso.handle,
                        entry=index,
                        field=issue.field,
                        reason=issue.message,
                    )
                    raise issue.error
                logger.warning(
                    issue.message, handle=dso.handle, entry=index, field=issue.field
                )
                report.issues.append(issue)
            candidates.append(policy)

        with context.transaction():
            context.authorize.remove_all_policies(context, dso)
            context.authorize.add_policies(context, candidates, dso)

        report.restored = len(candidates)
        logger.info(
            "Restored policies",
            handle=dso.handle,
            count=report.restored,
            warnings=len(report.issues),
        )
        return report

    def _from_entry(
        self, context: Context, entry: PolicyEntry
    ) -> Tuple[ResourcePolicy, List[ConversionIssue]]:
        policy = context.policies.create_policy(context)
        if entry.get(RP_NAME) is not None:
            policy.rp_name = entry.get(RP_NAME)
        if entry.get(RP_DESCRIPTION) is not None:
            policy.rp_description = entry.get(RP_DESCRIPTION)

        issues: List[ConversionIssue] = []
        issues += self._restore_dates(policy, entry)
        issues += self._restore_principal(context, policy, entry)
        issues += self._restore_action(policy, entry)
        return policy, issues

    def _restore_dates(
        self, policy: ResourcePolicy, entry: PolicyEntry
    ) -> List[ConversionIssue]:
        issues = []
        for attribute, slot in (
            (RP_START_DATE, "start_date"),
            (RP_END_DATE, "end_date"),
        ):
            raw = entry.get(attribute)
            if raw is None:
                continue
            try:
                setattr(policy, slot, parse_date(raw))
            except ValueError:
                issues.append(
                    ConversionIssue.recoverable(
                        attribute, f"Failed parsing {attribute} {raw!r}"
                    )
                )
        return issues

    def _restore_principal(
        self, context: Context, policy: ResourcePolicy, entry: PolicyEntry
    ) -> List[ConversionIssue]:
        raw_context = entry.get(RP_CONTEXT)
        kind = raw_context.upper() if raw_context else None
        body = entry.body or ""

        if kind == CONTEXT_ADMIN.upper():
            group = context.groups.find_group_by_name(context, Group.ADMIN)
            if group is None:
                return [
                    ConversionIssue.fatal(
                        RP_CONTEXT,
                        UnresolvablePrincipalError(
                            "The Administrator Group is missing from the database."
                        ),
                    )
                ]
            policy.group = group
        elif kind == CONTEXT_ANONYMOUS.upper():
            group = context.groups.find_group_by_name(context, Group.ANONYMOUS)
            if group is None:
                return [
                    ConversionIssue.fatal(
                        RP_CONTEXT,
                        UnresolvablePrincipalError(
                            "The Anonymous Group is missing from the database."
                        ),
                    )
                ]
            policy.group = group
        elif kind == CONTEXT_GROUP:
            try:
                name = self.translator.import_name(context, body)
            except TranslationError as e:
                return [ConversionIssue.fatal(RP_CONTEXT, e)]
            group = context.groups.find_group_by_name(context, name)
            if group is None:
                return [
                    ConversionIssue.fatal(
                        RP_CONTEXT,
                        UnresolvablePrincipalError(
                            f"Could not find managed group {name}"
                        ),
                    )
                ]
            policy.group = group
        elif kind == CONTEXT_ACCOUNT:
            account = context.accounts.find_account_by_email(context, body)
            if account is None:
                return [
                    ConversionIssue.fatal(
                        RP_CONTEXT,
                        UnresolvablePrincipalError(f"Could not find account {body}"),
                    )
                ]
            policy.account = account
        else:
            return [
                ConversionIssue.recoverable(
                    RP_CONTEXT, f"Unknown policy context {raw_context!r}"
                )
            ]
        return []

    def _restore_action(
        self, policy: ResourcePolicy, entry: PolicyEntry
    ) -> List[ConversionIssue]:
        name = entry.get(RP_ACTION)
        code = code_for(name)
        if code is not None:
            policy.action = code
            return []
        if self.strict_actions:
            return [ConversionIssue.fatal(RP_ACTION, UnmappedActionError(name))]
        return [ConversionIssue.recoverable(RP_ACTION, f"Unknown policy action {name!r}")]

