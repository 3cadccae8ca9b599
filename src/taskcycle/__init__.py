"""taskcycle: recurring tasks, daily "today" lists, slot scheduling and completion rewards."""
