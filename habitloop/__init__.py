"""habitloop: recurring routines, materialized daily tasks, and a daily reminder."""
