"""CLI command implementations.

Contains all cmd_* functions for CLI subcommands. Engine errors are
printed as one line and turn into exit status 1.
"""

import sys
from argparse import Namespace

from pydantic import ValidationError

from salonbook.errors import BookingError, ErrorDetail
from salonbook.scheduling import BookingEngine
from salonbook.storage import SalonDB, SeedLoadError, apply_seed, load_seed_file


def _open_db(args: Namespace) -> SalonDB:
    return SalonDB(args.db) if getattr(args, "db", None) else SalonDB()


def _fail(e: Exception, operation: str) -> None:
    detail = ErrorDetail.from_exception(e, operation)
    print(f"❌ {detail.type.value}: {detail.message}")
    sys.exit(1)


def cmd_init_db(args: Namespace) -> None:
    """Create the database schema."""
    db = _open_db(args)
    print(f"💾 Database ready: {db.db_path}")
    db.close()


def cmd_seed(args: Namespace) -> None:
    """Load seed data from YAML."""
    db = _open_db(args)
    try:
        summary = apply_seed(db, load_seed_file(args.seed_path))
    except (SeedLoadError, ValidationError) as e:
        print(f"❌ {e}")
        sys.exit(1)
    except BookingError as e:
        _fail(e, "seed")
    finally:
        db.close()

    print(
        f"🌱 Seeded {summary.tenants} tenants, {summary.resources} resources, "
        f"{summary.services} services"
    )


def cmd_slots(args: Namespace) -> None:
    """Print available slots for a resource, service and date."""
    db = _open_db(args)
    engine = BookingEngine.from_store(db)
    if args.trim:
        engine.trim_overrunning = True

    try:
        slots = engine.get_available_slots(
            args.tenant_id, args.resource_id, args.service_id, args.date
        )
    except BookingError as e:
        _fail(e, "slots")
    finally:
        db.close()

    if not slots:
        print(f"📅 {args.date}: no available slots")
        return

    print(f"📅 {args.date}: {len(slots)} available slots")
    print("   " + " ".join(slots))


def cmd_book(args: Namespace) -> None:
    """Book an appointment and print it."""
    db = _open_db(args)
    engine = BookingEngine.from_store(db)

    try:
        appointment = engine.create_booking(
            args.tenant_id,
            args.resource_id,
            args.service_id,
            args.date,
            args.start_time,
            client_name=args.name,
            client_email=args.email,
            client_phone=args.phone,
        )
    except BookingError as e:
        _fail(e, "book")
    finally:
        db.close()

    print(f"✅ Booked {appointment.id}")
    for field_name, value in appointment.model_dump(mode="json").items():
        print(f"   {field_name}: {value}")


def cmd_serve(args: Namespace) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from salonbook.api import create_app

    app = create_app(db=_open_db(args))
    print(f"🚀 Serving on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port)
