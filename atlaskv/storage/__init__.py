"""SSTable files, their builder and reader, and the manager that searches them."""