#!/usr/bin/env python3

import sys
from decimal import Decimal, InvalidOperation
from llm import get_extraction_oracle
from logger import get_logger
from models.expense import ExpenseStatus, ExtractedDraft

logger = get_logger()


def _resolve_user(services, external_id):
    user = services.users.find_by_external_id(external_id)
    if not user:
        logger.error(
            f"User '{external_id}' not found. Create it with 'python -m cli users create'."
        )
        sys.exit(1)
    return user


def _resolve_category(services, slug):
    category = services.categories.find_by_slug(slug)
    if not category:
        logger.error(f"Category '{slug}' not found.")
        sys.exit(1)
    return category


def _log_expense(services, expense):
    table = services.keyword_table
    suggested = (
        table.display_name(expense.suggested_category_id)
        if expense.suggested_category_id
        else "-"
    )
    committed = table.display_name(expense.category_id) if expense.category_id else "-"
    logger.info(
        f"#{expense.id} {expense.expense_date} {expense.amount} {expense.currency} "
        f"'{expense.description}'"
    )
    logger.info(
        f"    status={expense.status.value} suggested={suggested} "
        f"({expense.category_confidence:.0%}) category={committed}"
    )


def _log_options(services, user_id, expense_id):
    options = services.lifecycle.category_options(user_id, expense_id)
    logger.info("    Options:")
    for option in options:
        marker = "→" if option.is_primary else " "
        confidence = f" ({option.confidence:.0%})" if option.confidence > 0 else ""
        category = services.keyword_table.get(option.category_id)
        logger.info(
            f"    {marker} {option.icon} {option.name}{confidence} [{category.slug}]"
        )


def _build_draft(args, services):
    if args.amount is not None:
        try:
            amount = Decimal(args.amount)
        except InvalidOperation:
            logger.error(f"Invalid amount: {args.amount}")
            sys.exit(1)
        return ExtractedDraft(
            amount=amount,
            description=args.text,
            raw_input=args.text,
            currency=args.currency,
        )

    oracle = get_extraction_oracle(services.config)
    if oracle is None:
        logger.error("No --amount given and LLM extraction is disabled.")
        sys.exit(1)
    return oracle.extract(args.text)


def cmd_add(args, services):
    """Submit an expense message for a user."""
    user = _resolve_user(services, args.user)
    draft = _build_draft(args, services)

    result = services.lifecycle.submit(user.id, draft)

    logger.info("")
    _log_expense(services, result.expense)
    if result.inference and result.inference.matched_keywords:
        logger.info(f"    matched: {', '.join(result.inference.matched_keywords)}")
    if result.status == ExpenseStatus.NEEDS_REVIEW:
        if result.below_review_floor:
            logger.info("    Low confidence, pick a category:")
        _log_options(services, user.id, result.expense.id)


def cmd_pending(args, services):
    """List expenses waiting for a decision."""
    user = _resolve_user(services, args.user)
    pending = services.expenses.find_pending(user.id)
    if not pending:
        logger.info("No pending expenses.")
        return

    for expense in pending:
        _log_expense(services, expense)


def cmd_list(args, services):
    """List a user's recent expenses."""
    user = _resolve_user(services, args.user)
    status = ExpenseStatus(args.status) if args.status else None
    expenses = services.expenses.find_by_user(user.id, status=status, limit=args.limit)
    if not expenses:
        logger.info("No expenses found.")
        return

    for expense in expenses:
        _log_expense(services, expense)


def cmd_confirm(args, services):
    """Confirm an expense, optionally choosing another category."""
    user = _resolve_user(services, args.user)
    category_id = _resolve_category(services, args.category).id if args.category else None
    result = services.lifecycle.confirm(user.id, args.expense_id, category_id)
    logger.info("✓ Expense confirmed")
    _log_expense(services, result.expense)


def cmd_reject(args, services):
    """Reject an expense."""
    user = _resolve_user(services, args.user)
    services.lifecycle.reject(user.id, args.expense_id, args.reason)
    logger.info(f"✓ Expense #{args.expense_id} rejected")


def cmd_amount(args, services):
    """Correct the amount of an expense that is still awaiting review."""
    user = _resolve_user(services, args.user)
    result = services.lifecycle.update_amount(user.id, args.expense_id, args.amount)
    logger.info("✓ Amount updated")
    _log_expense(services, result.expense)


def cmd_recategorize(args, services):
    """Change the category of a confirmed expense."""
    user = _resolve_user(services, args.user)
    category = _resolve_category(services, args.category)
    result = services.lifecycle.recategorize(user.id, args.expense_id, category.id)
    logger.info("✓ Expense recategorized")
    _log_expense(services, result.expense)


def cmd_infer(args, services):
    """Show how a text would be categorized without storing anything."""
    user = _resolve_user(services, args.user)
    result = services.inference.infer(args.text, user.id)
    table = services.keyword_table

    logger.info(f"\nText: {args.text}")
    logger.info(
        f"Category: {table.display_name(result.category_id)} "
        f"(confidence {result.confidence:.0%})"
    )
    if result.is_fallback:
        logger.info("No keywords matched")
        return

    logger.info("\nCandidates:")
    for candidate in result.candidates:
        logger.info(
            f"  {table.display_name(candidate.category_id):<40} "
            f"score={candidate.score:<6} {', '.join(candidate.matched_keywords)}"
        )


def setup_parser(subparsers):
    """Setup expenses subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "expenses",
        help="Submit and review expenses",
        description="Submit expense messages and drive their confirmation",
    )
    expenses_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available expense commands",
        dest="subcommand",
        required=True,
    )

    # expenses add
    add_parser = expenses_subparsers.add_parser("add", help="Submit an expense")
    add_parser.add_argument("text", help="Expense message, e.g. 'tacos al pastor'")
    add_parser.add_argument("--user", required=True, help="User external id")
    add_parser.add_argument(
        "--amount", help="Amount; when omitted the LLM extracts it from the text"
    )
    add_parser.add_argument("--currency", default="MXN", help="Currency code")
    add_parser.set_defaults(func=cmd_add)

    # expenses pending
    pending_parser = expenses_subparsers.add_parser(
        "pending", help="List expenses waiting for review"
    )
    pending_parser.add_argument("--user", required=True, help="User external id")
    pending_parser.set_defaults(func=cmd_pending)

    # expenses list
    list_parser = expenses_subparsers.add_parser("list", help="List recent expenses")
    list_parser.add_argument("--user", required=True, help="User external id")
    list_parser.add_argument(
        "--status", choices=[s.value for s in ExpenseStatus], help="Filter by status"
    )
    list_parser.add_argument("--limit", type=int, default=20, help="Maximum to show")
    list_parser.set_defaults(func=cmd_list)

    # expenses confirm
    confirm_parser = expenses_subparsers.add_parser("confirm", help="Confirm an expense")
    confirm_parser.add_argument("expense_id", type=int, help="Expense ID")
    confirm_parser.add_argument("--user", required=True, help="User external id")
    confirm_parser.add_argument(
        "--category", help="Slug of a different category than the suggested one"
    )
    confirm_parser.set_defaults(func=cmd_confirm)

    # expenses reject
    reject_parser = expenses_subparsers.add_parser("reject", help="Reject an expense")
    reject_parser.add_argument("expense_id", type=int, help="Expense ID")
    reject_parser.add_argument("--user", required=True, help="User external id")
    reject_parser.add_argument("--reason", help="Why it was rejected")
    reject_parser.set_defaults(func=cmd_reject)

    # expenses amount
    amount_parser = expenses_subparsers.add_parser(
        "amount", help="Correct the amount of a pending expense"
    )
    amount_parser.add_argument("expense_id", type=int, help="Expense ID")
    amount_parser.add_argument("amount", help="Corrected amount, e.g. 125.50")
    amount_parser.add_argument("--user", required=True, help="User external id")
    amount_parser.set_defaults(func=cmd_amount)

    # expenses recategorize
    recategorize_parser = expenses_subparsers.add_parser(
        "recategorize", help="Change the category of a confirmed expense"
    )
    recategorize_parser.add_argument("expense_id", type=int, help="Expense ID")
    recategorize_parser.add_argument("category", help="New category slug")
    recategorize_parser.add_argument("--user", required=True, help="User external id")
    recategorize_parser.set_defaults(func=cmd_recategorize)

    # expenses infer
    infer_parser = expenses_subparsers.add_parser(
        "infer", help="Show the inferred category for a text"
    )
    infer_parser.add_argument("text", help="Text to categorize")
    infer_parser.add_argument("--user", required=True, help="User external id")
    infer_parser.set_defaults(func=cmd_infer)
