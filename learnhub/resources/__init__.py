# Course resource links
