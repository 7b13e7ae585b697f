"""Expression node tree, operator enums and fluent builders."""
