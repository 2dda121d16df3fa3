"""
RoutesCommand — List indexed routes

One line per route: method, path, fully qualified action, source position.
"""

from typing import Optional

from .base import BaseCommand


class RoutesCommand(BaseCommand):
    """Show the routes the index found."""

    def list_routes(self, controller: Optional[str] = None):
        """
        Args:
            controller: Only routes of this controller (with or without
                the Controller suffix)
        """
        routes = self.session.index.snapshot.all_routes()
        if controller:
            wanted = controller[:-len("Controller")] if controller.endswith("Controller") else controller
            routes = [r for r in routes if r.controller == wanted]

        if self.json_output:
            self.emit_json([r.to_dict() for r in routes])
            return

        if not routes:
            print("No routes found.")
            return

        for r in routes:
            print(f"{r.method:<8} {r.url_path:<40} {r.qualified_controller}@{r.action}"
                  f"  ({self.relative(r.file)}:{r.line + 1})")
        print(f"\n{len(routes)} route(s)")


def register_parser(subparsers):
    """Register routes command parser."""
    p = subparsers.add_parser('routes', help='List indexed routes')
    p.add_argument('--controller', '-c', metavar='NAME',
                   help='Only routes handled by this controller')
    return p


def handle(cli, args):
    """Handle routes command dispatch."""
    RoutesCommand(cli).list_routes(controller=args.controller)
