from scorebox.generators.roster_generator import RosterGenerator

__all__ = ["RosterGenerator"]
