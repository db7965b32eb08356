# Course catalog
